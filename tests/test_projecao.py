import unittest

from models.erros import FormatError
from services.projecao_service import calcular_projecao_temporal

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


class TestProjecaoTemporal(unittest.TestCase):
    def test_periodo_completo(self):
        projecao = calcular_projecao_temporal(DADOS)
        self.assertEqual(sorted(projecao["resultadosAnuais"]), list(range(2026, 2034)))
        self.assertEqual(projecao["comparacaoRegimes"]["anos"], list(range(2026, 2034)))
        self.assertEqual(len(projecao["comparacaoRegimes"]["splitPayment"]["capitalGiro"]), 8)
        self.assertNotIn("erro", projecao)

    def test_faturamento_cresce_composto(self):
        projecao = calcular_projecao_temporal(DADOS, 2026, 2028, "moderado")
        anuais = projecao["resultadosAnuais"]
        self.assertEqual(anuais[2026]["resultadoAtual"]["faturamento"], 1_000_000)
        self.assertEqual(anuais[2027]["resultadoAtual"]["faturamento"], 1_050_000)
        self.assertEqual(anuais[2028]["resultadoAtual"]["faturamento"], 1_102_500)

    def test_impacto_acumulado(self):
        projecao = calcular_projecao_temporal(DADOS, 2026, 2027)
        anuais = projecao["resultadosAnuais"]
        total = sum(r["necessidadeAdicionalCapitalGiro"] for r in anuais.values())
        self.assertAlmostEqual(projecao["impactoAcumulado"]["totalNecessidadeCapitalGiro"], total)
        media = (anuais[2026]["impactoMargem"] + anuais[2027]["impactoMargem"]) / 2
        self.assertAlmostEqual(projecao["impactoAcumulado"]["impactoMedioMargem"], media)

    def test_impacto_aumenta_ao_longo_da_transicao(self):
        projecao = calcular_projecao_temporal(DADOS)
        diferencas = projecao["comparacaoRegimes"]["impacto"]["diferencaCapitalGiro"]
        self.assertEqual(diferencas, sorted(diferencas, reverse=True))

    def test_analise_elasticidade(self):
        projecao = calcular_projecao_temporal(DADOS)
        elasticidade = projecao["analiseElasticidade"]
        self.assertEqual(len(elasticidade["resultados"]), 6)
        self.assertNotIn("Moderado", elasticidade["elasticidades"])
        self.assertGreater(elasticidade["elasticidades"]["Otimista"], 0)
        self.assertGreater(
            elasticidade["resultados"]["Acelerado"]["impactoAcumulado"],
            elasticidade["resultados"]["Recessão"]["impactoAcumulado"],
        )

    def test_cenario_personalizado(self):
        projecao = calcular_projecao_temporal(DADOS, 2026, 2027, "personalizado", 10)
        self.assertAlmostEqual(projecao["parametros"]["taxaCrescimento"], 0.10)
        self.assertEqual(projecao["resultadosAnuais"][2027]["resultadoAtual"]["faturamento"], 1_100_000)

    def test_cenario_invalido_usa_moderado(self):
        with self.assertLogs("services.projecao_service", level="WARNING"):
            projecao = calcular_projecao_temporal(DADOS, 2026, 2026, "pessimista")
        self.assertEqual(projecao["parametros"]["cenarioTaxaCrescimento"], "moderado")
        self.assertAlmostEqual(projecao["parametros"]["taxaCrescimento"], 0.05)

    def test_faturamento_invalido(self):
        with self.assertRaises(ValueError):
            calcular_projecao_temporal({**DADOS, "faturamento": 0})
        with self.assertRaises(ValueError):
            calcular_projecao_temporal({**DADOS, "faturamento": "muito"})

    def test_intervalo_invalido(self):
        with self.assertRaises(ValueError):
            calcular_projecao_temporal(DADOS, 2025, 2030)
        with self.assertRaises(ValueError):
            calcular_projecao_temporal(DADOS, 2030, 2027)
        with self.assertRaises(ValueError):
            calcular_projecao_temporal(DADOS, 2026, 2034)

    def test_dados_aninhados_sao_recusados(self):
        with self.assertRaises(FormatError):
            calcular_projecao_temporal({"empresa": {"faturamento": 1_000_000}})

    def test_dados_nao_sao_alterados(self):
        dados = dict(DADOS)
        calcular_projecao_temporal(dados, 2026, 2030)
        self.assertEqual(dados, DADOS)


if __name__ == "__main__":
    unittest.main()
