import math
import unittest

from models.erros import FormatError
from models.schemas import EstrategiasConfig
from services.estrategias_service import (
    calcular_efetividade_ajuste_precos,
    calcular_efetividade_antecipacao_recebiveis,
    calcular_efetividade_capital_giro,
    calcular_efetividade_meios_pagamento,
    calcular_efetividade_mitigacao,
    calcular_efetividade_mix_produtos,
    calcular_efetividade_renegociacao_prazos,
)

DADOS = {
    "faturamento": 1_000_000,
    "aliquota": 0.265,
    "pmr": 30,
    "pmp": 30,
    "pme": 30,
    "percVista": 0.3,
    "percPrazo": 0.7,
    "margem": 0.15,
}

IMPACTO_BASE = {"diferencaCapitalGiro": -26500}


class TestAvaliadores(unittest.TestCase):
    def test_ajuste_precos(self):
        resultado = calcular_efetividade_ajuste_precos(
            DADOS, {"percentualAumento": 5, "elasticidade": -1.2, "periodoAjuste": 3}, IMPACTO_BASE
        )
        self.assertAlmostEqual(resultado["impactoVendas"], -0.06)
        self.assertAlmostEqual(resultado["faturamentoAjustado"], 987000)
        self.assertAlmostEqual(resultado["fluxoCaixaAdicional"], -1950)
        self.assertAlmostEqual(resultado["mitigacaoTotal"], -5850)
        self.assertAlmostEqual(resultado["efetividadePercentual"], -5850 / 26500 * 100)
        self.assertAlmostEqual(resultado["custoEstrategia"], 180000)

    def test_renegociacao_prazos(self):
        resultado = calcular_efetividade_renegociacao_prazos(
            DADOS, {"aumentoPrazo": 15, "percentualFornecedores": 60, "custoContrapartida": 0}, IMPACTO_BASE
        )
        self.assertAlmostEqual(resultado["pagamentosFornecedores"], 595000)
        self.assertAlmostEqual(resultado["impactoFluxoCaixa"], 178500)
        self.assertAlmostEqual(resultado["impactoNovoPMP"], 39)
        self.assertAlmostEqual(resultado["diferencaCiclo"], 9)
        self.assertEqual(resultado["custoTotal"], 0)
        self.assertEqual(resultado["custoBeneficio"], 0.0)

    def test_antecipacao_recebiveis(self):
        resultado = calcular_efetividade_antecipacao_recebiveis(
            DADOS, {"percentualAntecipacao": 50, "taxaDesconto": 1.8, "prazoAntecipacao": 25}, IMPACTO_BASE
        )
        self.assertAlmostEqual(resultado["valorAntecipado"], 350000)
        self.assertAlmostEqual(resultado["custoAntecipacao"], 5250)
        self.assertAlmostEqual(resultado["impactoFluxoCaixa"], 344750)
        self.assertAlmostEqual(resultado["taxaDesconto"], 1.8)
        self.assertAlmostEqual(resultado["pmrAjustado"], 19.5)
        self.assertAlmostEqual(resultado["reducaoPMR"], 10.5)

    def test_antecipacao_aceita_taxa_em_fracao(self):
        em_percentual = calcular_efetividade_antecipacao_recebiveis(
            DADOS, {"percentualAntecipacao": 50, "taxaDesconto": 1.8, "prazoAntecipacao": 25}, IMPACTO_BASE
        )
        em_fracao = calcular_efetividade_antecipacao_recebiveis(
            DADOS, {"percentualAntecipacao": 50, "taxaDesconto": 0.018, "prazoAntecipacao": 25}, IMPACTO_BASE
        )
        self.assertAlmostEqual(em_percentual["custoAntecipacao"], em_fracao["custoAntecipacao"])

    def test_capital_giro(self):
        resultado = calcular_efetividade_capital_giro(
            DADOS, {"valorCaptacao": 100, "taxaJuros": 2.1, "prazoPagamento": 12, "carencia": 3}, IMPACTO_BASE
        )
        self.assertAlmostEqual(resultado["valorFinanciamento"], 26500)
        self.assertAlmostEqual(resultado["efetividadePercentual"], 100)
        self.assertAlmostEqual(resultado["custoMensalJuros"], 556.5)
        self.assertAlmostEqual(resultado["custoCarencia"], 1669.5)
        self.assertAlmostEqual(resultado["custoTotalFinanciamento"], 33178)
        self.assertAlmostEqual(resultado["mitigacaoTotal"], 26500)

    def test_capital_giro_prazo_menor_que_carencia(self):
        with self.assertLogs("services.estrategias_service", level="WARNING"):
            resultado = calcular_efetividade_capital_giro(
                DADOS, {"valorCaptacao": 100, "taxaJuros": 2.1, "prazoPagamento": 3, "carencia": 3}, IMPACTO_BASE
            )
        self.assertIn("erro", resultado)
        self.assertEqual(resultado["efetividadePercentual"], 0)

    def test_mix_produtos(self):
        resultado = calcular_efetividade_mix_produtos(
            DADOS,
            {"percentualAjuste": 30, "focoAjuste": "ciclo", "impactoReceita": -5, "impactoMargem": 3.5},
            IMPACTO_BASE,
        )
        self.assertAlmostEqual(resultado["valorAjustado"], 300000)
        self.assertAlmostEqual(resultado["impactoFluxoReceita"], -2250)
        self.assertAlmostEqual(resultado["impactoFluxoMargem"], 35000)
        self.assertAlmostEqual(resultado["impactoFluxoCaixa"], 32750)
        self.assertAlmostEqual(resultado["reducaoCiclo"], 1.5)
        self.assertAlmostEqual(resultado["variacaoMargem"], 0.035)
        self.assertAlmostEqual(resultado["custoImplementacao"], 30000)

    def test_mix_produtos_foco_vista(self):
        resultado = calcular_efetividade_mix_produtos(
            DADOS, {"percentualAjuste": 20, "focoAjuste": "vista"}, IMPACTO_BASE
        )
        self.assertAlmostEqual(resultado["impactoPMR"], 3)
        self.assertAlmostEqual(resultado["pmrAjustado"], 27)

    def test_meios_pagamento(self):
        resultado = calcular_efetividade_meios_pagamento(
            {**DADOS, "pmr": 45},
            {
                "distribuicaoAtual": {"vista": 30, "prazo": 70},
                "distribuicaoNova": {"vista": 40, "dias30": 30, "dias60": 20, "dias90": 10},
                "taxaIncentivo": 3,
            },
            IMPACTO_BASE,
        )
        self.assertAlmostEqual(resultado["pmrNovo"], 30)
        self.assertAlmostEqual(resultado["variaPMR"], -15)
        self.assertAlmostEqual(resultado["valorIncentivoMensal"], 3000)
        self.assertAlmostEqual(resultado["impactoFluxoPMR"], 500000)
        self.assertAlmostEqual(resultado["impactoLiquido"], 497000)
        self.assertAlmostEqual(resultado["custoBeneficio"], 3000 / 500000)

    def test_meios_pagamento_sem_reducao_de_prazo(self):
        resultado = calcular_efetividade_meios_pagamento(
            DADOS,
            {
                "distribuicaoAtual": {"vista": 30, "prazo": 70},
                "distribuicaoNova": {"vista": 40, "dias30": 30, "dias60": 20, "dias90": 10},
                "taxaIncentivo": 3,
            },
            IMPACTO_BASE,
        )
        self.assertTrue(math.isinf(resultado["custoBeneficio"]))

    def test_meios_pagamento_distribuicao_invalida(self):
        with self.assertLogs("services.estrategias_service", level="WARNING"):
            resultado = calcular_efetividade_meios_pagamento(
                DADOS, {"distribuicaoNova": {"vista": 50, "dias30": 30}}, IMPACTO_BASE
            )
        self.assertEqual(resultado["efetividadePercentual"], 0)
        self.assertIn("erro", resultado)

    def test_sem_impacto_efetividade_zero(self):
        resultado = calcular_efetividade_mix_produtos(
            DADOS, {"percentualAjuste": 30, "impactoMargem": 3.5}, {"diferencaCapitalGiro": 0}
        )
        self.assertEqual(resultado["efetividadePercentual"], 0.0)


class TestEfetividadeMitigacao(unittest.TestCase):
    def test_estrategias_ativas(self):
        estrategias = EstrategiasConfig.model_validate({
            "antecipacaoRecebiveis": {"ativar": True},
            "capitalGiro": {"ativar": True},
        })
        resultado = calcular_efetividade_mitigacao(DADOS, estrategias, 2026)

        self.assertAlmostEqual(resultado["impactoBase"]["diferencaCapitalGiro"], -26500)
        self.assertIsNone(resultado["resultadosEstrategias"]["ajustePrecos"])
        self.assertIsNotNone(resultado["resultadosEstrategias"]["capitalGiro"])
        self.assertEqual(resultado["estrategiaMaisEfetiva"]["estrategia"], "antecipacaoRecebiveis")
        self.assertEqual(
            [e["estrategia"] for e in resultado["estrategiasOrdenadas"]],
            ["antecipacaoRecebiveis", "capitalGiro"],
        )
        self.assertEqual(resultado["efetividadeCombinada"]["estrategiasAtivas"], 2)
        self.assertLessEqual(resultado["efetividadeCombinada"]["efetividadePercentual"], 100)
        self.assertIn("comMitigacao", resultado["regimesComparacao"])

    def test_aceita_dicionario(self):
        resultado = calcular_efetividade_mitigacao(
            DADOS, {"capitalGiro": {"ativar": True, "valorCaptacao": 50, "taxaJuros": 2, "prazoPagamento": 12,
                                    "carencia": 0}}
        )
        self.assertAlmostEqual(resultado["resultadosEstrategias"]["capitalGiro"]["efetividadePercentual"], 50)

    def test_nenhuma_estrategia_ativa(self):
        resultado = calcular_efetividade_mitigacao(DADOS, EstrategiasConfig())
        self.assertEqual(resultado["estrategiasOrdenadas"], [])
        self.assertIsNone(resultado["estrategiaMaisEfetiva"])
        self.assertEqual(resultado["efetividadeCombinada"]["efetividadePercentual"], 0)
        self.assertEqual(resultado["combinacaoOtima"]["estrategiasSelecionadas"], [])

    def test_dados_aninhados_sao_recusados(self):
        with self.assertRaises(FormatError):
            calcular_efetividade_mitigacao({"empresa": {}}, EstrategiasConfig())


if __name__ == "__main__":
    unittest.main()
