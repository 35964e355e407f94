import unittest

from services.sistema_atual_service import calcular_todos_impostos_atuais
from services.transicao_service import (
    calcular_economia_estimada_reforma,
    calcular_evolucao_tributaria_detalhada,
    calcular_transicao_iva_dual,
)


class TestTransicaoIVADual(unittest.TestCase):
    def setUp(self):
        self.impostos = calcular_todos_impostos_atuais(1_000_000)

    def test_impostos_atuais_comercio(self):
        self.assertAlmostEqual(self.impostos["pis"], 16500)
        self.assertAlmostEqual(self.impostos["cofins"], 76000)
        self.assertAlmostEqual(self.impostos["icms"], 180000)
        self.assertAlmostEqual(self.impostos["ipi"], 100000)
        self.assertNotIn("iss", self.impostos)

    def test_2026_reduz_pis_cofins_e_mantem_icms(self):
        resultado = calcular_transicao_iva_dual(1_000_000, 2026, self.impostos)
        self.assertAlmostEqual(resultado["pis"], 14850)
        self.assertAlmostEqual(resultado["cofins"], 68400)
        self.assertAlmostEqual(resultado["icms"], 180000)
        self.assertAlmostEqual(resultado["cbs"], 8250)
        self.assertEqual(resultado["ibs"], 0.0)
        self.assertAlmostEqual(resultado["total"], 371500)

    def test_nao_altera_impostos_recebidos(self):
        calcular_transicao_iva_dual(1_000_000, 2030, self.impostos)
        self.assertAlmostEqual(self.impostos["pis"], 16500)
        self.assertAlmostEqual(self.impostos["icms"], 180000)
        self.assertNotIn("cbs", self.impostos)

    def test_2033_substitui_icms_pelo_ibs(self):
        resultado = calcular_transicao_iva_dual(1_000_000, 2033, self.impostos)
        self.assertAlmostEqual(resultado["icms"], 0)
        self.assertAlmostEqual(resultado["pis"], 0)
        self.assertAlmostEqual(resultado["cbs"], 82500)
        self.assertAlmostEqual(resultado["ibs"], 82500)

    def test_iss_reduzido_pelo_ibs(self):
        impostos = calcular_todos_impostos_atuais(1_000_000, empresa_servicos=True)
        resultado = calcular_transicao_iva_dual(1_000_000, 2031, impostos)
        self.assertAlmostEqual(resultado["iss"], 25000)

    def test_aliquotas_dos_dados_prevalecem_sobre_o_setor(self):
        resultado = calcular_transicao_iva_dual(
            1_000_000, 2026, self.impostos,
            parametros_setoriais={"aliquotaCBS": 0.05},
            dados={"aliquotaCBS": 0.1},
        )
        self.assertAlmostEqual(resultado["cbs"], 10000)

        resultado = calcular_transicao_iva_dual(
            1_000_000, 2026, self.impostos, parametros_setoriais={"aliquotaCBS": 0.05}
        )
        self.assertAlmostEqual(resultado["cbs"], 5000)

    def test_categoria_isenta(self):
        resultado = calcular_transicao_iva_dual(1_000_000, 2033, self.impostos, dados={"categoriaIVA": "exempt"})
        self.assertEqual(resultado["cbs"], 0.0)
        self.assertEqual(resultado["ibs"], 0.0)

    def test_total_recalculado(self):
        resultado = calcular_transicao_iva_dual(1_000_000, 2030, self.impostos)
        soma = sum(v for k, v in resultado.items() if k != "total")
        self.assertAlmostEqual(resultado["total"], soma)


class TestEvolucaoTributaria(unittest.TestCase):
    composicao = {
        "debitos": {"pis": 16500, "cofins": 76000, "icms": 180000, "ipi": 0},
        "creditos": {"icms": 80000},
    }

    def test_evolucao_ano_a_ano(self):
        evolucao = calcular_evolucao_tributaria_detalhada(self.composicao, 1_000_000)
        self.assertEqual(evolucao["anos"], list(range(2026, 2034)))
        self.assertAlmostEqual(evolucao["evolucaoPorAno"][2026]["faturamento"], 1_000_000)
        self.assertAlmostEqual(evolucao["evolucaoPorAno"][2027]["faturamento"], 1_050_000)
        self.assertEqual(evolucao["evolucaoPorAno"][2026]["ibs"], 0)
        self.assertAlmostEqual(evolucao["evolucaoPorAno"][2033]["pis"], 0)
        self.assertAlmostEqual(evolucao["evolucaoPorAno"][2033]["icms"], 0)
        self.assertAlmostEqual(evolucao["evolucaoPorAno"][2026]["aliquotasEfetivas"]["icms"], 10)
        self.assertEqual(len(evolucao["totaisPorImposto"]["total"]), 8)

    def test_cenario_personalizado(self):
        evolucao = calcular_evolucao_tributaria_detalhada(
            self.composicao, 1_000_000, {"cenario": "personalizado", "taxaCrescimento": 0.1}
        )
        self.assertAlmostEqual(evolucao["parametrosUtilizados"]["taxaCrescimento"], 0.1)
        self.assertAlmostEqual(evolucao["evolucaoPorAno"][2027]["faturamento"], 1_100_000)

    def test_faturamento_zero_nao_divide_por_zero(self):
        evolucao = calcular_evolucao_tributaria_detalhada(self.composicao, 0)
        self.assertEqual(evolucao["evolucaoPorAno"][2033]["total"], 0)
        self.assertEqual(evolucao["estatisticas"]["variacaoTotalImpostos"], 0.0)
        self.assertEqual(evolucao["estatisticas"]["economiaEstimadaReforma"]["percentualEconomia"], 0.0)

    def test_economia_estimada(self):
        evolucao = calcular_evolucao_tributaria_detalhada(self.composicao, 1_000_000)
        economia = evolucao["estatisticas"]["economiaEstimadaReforma"]
        self.assertGreater(economia["economia"], 0)
        self.assertAlmostEqual(
            economia["economia"], economia["totalSistemaAtual"] - economia["totalSistemaReformado"]
        )

    def test_economia_sem_anos(self):
        economia = calcular_economia_estimada_reforma({}, {"pis": 0.01})
        self.assertEqual(economia["totalSistemaAtual"], 0.0)
        self.assertEqual(economia["percentualEconomia"], 0.0)


if __name__ == "__main__":
    unittest.main()
