import unittest

from services.cronograma_service import CRONOGRAMAS_PADRAO, TRANSITION_YEARS, obter_percentual_implementacao


class TestCronograma(unittest.TestCase):
    def test_tabela_padrao_split_payment(self):
        esperado = {2026: 0.10, 2027: 0.25, 2028: 0.40, 2029: 0.55,
                    2030: 0.70, 2031: 0.85, 2032: 0.95, 2033: 1.00}
        for ano, percentual in esperado.items():
            self.assertEqual(obter_percentual_implementacao(ano), percentual)

    def test_cbs_e_ibs(self):
        self.assertEqual(obter_percentual_implementacao(2026, "cbs"), 0.10)
        self.assertEqual(obter_percentual_implementacao(2027, "cbs"), 1.00)
        self.assertEqual(obter_percentual_implementacao(2028, "ibs"), 0.00)
        self.assertEqual(obter_percentual_implementacao(2031, "ibs"), 0.50)

    def test_cronogramas_sao_monotonicos(self):
        for tipo, cronograma in CRONOGRAMAS_PADRAO.items():
            valores = [cronograma[ano] for ano in sorted(cronograma)]
            self.assertEqual(valores, sorted(valores), tipo)
            self.assertEqual(valores[-1], 1.0)

    def test_ano_sem_entrada_retorna_zero(self):
        self.assertEqual(obter_percentual_implementacao(2040), 0.0)

    def test_ano_invalido_usa_2026(self):
        with self.assertLogs("services.cronograma_service", level="WARNING"):
            self.assertEqual(obter_percentual_implementacao(1999), 0.10)
        with self.assertLogs("services.cronograma_service", level="WARNING"):
            self.assertEqual(obter_percentual_implementacao("2030"), 0.10)

    def test_cronograma_proprio(self):
        setor = {"cronogramaProprio": True, "cronogramas": {"splitPayment": {2026: 0.5}}}
        self.assertEqual(obter_percentual_implementacao(2026, "splitPayment", setor), 0.5)
        # ano ausente no cronograma próprio cai na tabela padrão
        self.assertEqual(obter_percentual_implementacao(2027, "splitPayment", setor), 0.25)

    def test_cronograma_proprio_com_chaves_texto(self):
        setor = {"cronogramaProprio": True, "cronogramas": {"ibs": {"2029": 0.3}}}
        self.assertEqual(obter_percentual_implementacao(2029, "ibs", setor), 0.3)

    def test_cronograma_proprio_desligado_e_ignorado(self):
        setor = {"cronogramaProprio": False, "cronogramas": {"splitPayment": {2026: 0.5}}}
        self.assertEqual(obter_percentual_implementacao(2026, "splitPayment", setor), 0.10)

    def test_anos_da_transicao(self):
        self.assertEqual([cfg["ano"] for cfg in TRANSITION_YEARS], list(range(2026, 2034)))


if __name__ == "__main__":
    unittest.main()
