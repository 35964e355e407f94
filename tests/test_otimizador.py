import unittest

from services.nucleo_calculo_service import CAMPOS_CUSTO_ESTRATEGIA
from services.otimizador_service import (
    MAX_ESTRATEGIAS_COMBINACAO,
    calcular_efetividade_combinada,
    identificar_combinacao_otima,
)

DADOS = {"faturamento": 1_000_000, "aliquota": 0.265, "pmr": 30, "pmp": 30, "pme": 30, "margem": 0.15}
IMPACTO_BASE = {"diferencaCapitalGiro": -26500}


def _resultado(nome, efetividade, custo, relacao=0.5):
    return {"efetividadePercentual": efetividade, CAMPOS_CUSTO_ESTRATEGIA[nome]: custo, "custoBeneficio": relacao}


class TestEfetividadeCombinada(unittest.TestCase):
    def test_sem_estrategias(self):
        combinada = calcular_efetividade_combinada(DADOS, {"ajustePrecos": None}, IMPACTO_BASE)
        self.assertEqual(combinada["estrategiasAtivas"], 0)
        self.assertEqual(combinada["efetividadePercentual"], 0)

    def test_ignora_estrategias_com_erro(self):
        resultados = {
            "capitalGiro": {"erro": "configuração inválida", "efetividadePercentual": 0},
            "antecipacaoRecebiveis": {"impactoFluxoCaixa": 13250, "custoTotalAntecipacao": 100},
        }
        combinada = calcular_efetividade_combinada(DADOS, resultados, IMPACTO_BASE)
        self.assertEqual(combinada["estrategiasAtivas"], 1)
        self.assertAlmostEqual(combinada["efetividadePercentual"], 50)
        self.assertAlmostEqual(combinada["custoTotal"], 100)

    def test_efetividade_limitada_a_100(self):
        resultados = {
            "renegociacaoPrazos": {"impactoFluxoCaixa": 20000, "impactoNovoPMP": 40},
            "capitalGiro": {"valorFinanciamento": 26500, "impactoMargemPP": 0.1},
        }
        combinada = calcular_efetividade_combinada(DADOS, resultados, IMPACTO_BASE)
        self.assertEqual(combinada["efetividadePercentual"], 100)
        self.assertAlmostEqual(combinada["mitigacaoTotal"], 46500)

    def test_sobreposicao_de_prazos_e_margem(self):
        resultados = {
            "renegociacaoPrazos": {"impactoFluxoCaixa": 1000, "impactoNovoPMP": 40},
            "antecipacaoRecebiveis": {"impactoFluxoCaixa": 1000, "reducaoPMR": 10},
            "mixProdutos": {"impactoFluxoCaixa": 1000, "variacaoMargem": 0.02},
        }
        combinada = calcular_efetividade_combinada(DADOS, resultados, IMPACTO_BASE)
        self.assertAlmostEqual(combinada["pmpAjustado"], 30 + 10 * 0.9)
        self.assertAlmostEqual(combinada["pmrAjustado"], 30 - 10 * 0.8)
        self.assertAlmostEqual(combinada["margemAjustada"], 0.15 + 0.02 * 0.85)
        self.assertAlmostEqual(combinada["cicloFinanceiroAjustado"], 22 + 30 - 39)

    def test_sem_impacto_efetividade_zero(self):
        resultados = {"capitalGiro": {"valorFinanciamento": 1000}}
        combinada = calcular_efetividade_combinada(DADOS, resultados, {"diferencaCapitalGiro": 0})
        self.assertEqual(combinada["efetividadePercentual"], 0.0)


class TestCombinacaoOtima(unittest.TestCase):
    def test_seis_estrategias(self):
        resultados = {nome: _resultado(nome, 20, 1000) for nome in CAMPOS_CUSTO_ESTRATEGIA}
        otima = identificar_combinacao_otima(DADOS, resultados, IMPACTO_BASE)
        # C(6,1) + C(6,2) + C(6,3) + C(6,4) + C(6,5)
        self.assertEqual(otima["combinacoesAvaliadas"], 62)
        self.assertLessEqual(len(otima["estrategiasSelecionadas"]), MAX_ESTRATEGIAS_COMBINACAO)
        self.assertLessEqual(otima["efetividadePercentual"], 100)

    def test_prefere_a_mais_barata_acima_de_70(self):
        resultados = {
            "ajustePrecos": _resultado("ajustePrecos", 80, 100),
            "renegociacaoPrazos": _resultado("renegociacaoPrazos", 75, 50),
        }
        otima = identificar_combinacao_otima(DADOS, resultados, IMPACTO_BASE)
        self.assertEqual(otima["estrategiasSelecionadas"], ["renegociacaoPrazos"])
        self.assertEqual(otima["nomeEstrategias"], ["Renegociação de Prazos"])
        self.assertEqual(otima["combinacoesAvaliadas"], 3)
        self.assertEqual(otima["alternativas"]["melhorEfetividade"]["estrategias"],
                         ["ajustePrecos", "renegociacaoPrazos"])

    def test_combinacao_tem_desconto(self):
        resultados = {
            "ajustePrecos": _resultado("ajustePrecos", 30, 100),
            "renegociacaoPrazos": _resultado("renegociacaoPrazos", 30, 100),
        }
        otima = identificar_combinacao_otima(DADOS, resultados, IMPACTO_BASE)
        self.assertAlmostEqual(otima["alternativas"]["melhorEfetividade"]["efetividade"], 60 * 0.95)

    def test_abaixo_de_70_escolhe_a_mais_efetiva_da_fronteira(self):
        resultados = {
            "ajustePrecos": _resultado("ajustePrecos", 20, 100),
            "capitalGiro": _resultado("capitalGiro", 10, 10),
        }
        otima = identificar_combinacao_otima(DADOS, resultados, IMPACTO_BASE)
        self.assertEqual(sorted(otima["estrategiasSelecionadas"]), ["ajustePrecos", "capitalGiro"])
        self.assertAlmostEqual(otima["efetividadePercentual"], 30 * 0.95)

    def test_ignora_efetividade_nula_ou_negativa(self):
        resultados = {
            "ajustePrecos": _resultado("ajustePrecos", -10, 100),
            "capitalGiro": _resultado("capitalGiro", 0, 10),
        }
        otima = identificar_combinacao_otima(DADOS, resultados, IMPACTO_BASE)
        self.assertEqual(otima["estrategiasSelecionadas"], [])
        self.assertEqual(otima["combinacoesAvaliadas"], 0)


if __name__ == "__main__":
    unittest.main()
