import unittest

from services.iva_dual_service import ALIQUOTAS_IVA_DUAL, calcular_cbs, calcular_ibs, calcular_total_iva


class TestCBS(unittest.TestCase):
    def test_aliquota_padrao(self):
        self.assertAlmostEqual(calcular_cbs(1000), 82.5)

    def test_creditos_nunca_deixam_imposto_negativo(self):
        self.assertAlmostEqual(calcular_cbs(1000, creditos=20), 62.5)
        self.assertEqual(calcular_cbs(1000, creditos=100), 0.0)

    def test_categorias(self):
        self.assertAlmostEqual(calcular_cbs(1000, categoria="reduced"), 41.25)
        self.assertEqual(calcular_cbs(1000, categoria="exempt"), 0.0)

    def test_monotonia_das_categorias(self):
        for base in (0, 1, 1000, 1_000_000):
            isenta = calcular_cbs(base, categoria="exempt")
            reduzida = calcular_cbs(base, categoria="reduced")
            padrao = calcular_cbs(base, categoria="standard")
            self.assertEqual(isenta, 0)
            self.assertLessEqual(isenta, reduzida)
            self.assertLessEqual(reduzida, padrao)

    def test_categoria_desconhecida_usa_standard(self):
        with self.assertLogs("services.iva_dual_service", level="WARNING"):
            self.assertAlmostEqual(calcular_cbs(1000, categoria="luxo"), 82.5)

    def test_base_invalida_vira_zero(self):
        with self.assertLogs("services.iva_dual_service", level="WARNING"):
            self.assertEqual(calcular_cbs("abc"), 0.0)
        with self.assertLogs("services.iva_dual_service", level="WARNING"):
            self.assertEqual(calcular_cbs(float("nan")), 0.0)


class TestIBS(unittest.TestCase):
    def test_aliquota_padrao(self):
        self.assertAlmostEqual(calcular_ibs(1000), 82.5)

    def test_reducao_especial_sobre_a_categoria(self):
        self.assertAlmostEqual(calcular_ibs(1000, reducao_especial=0.4), 49.5)
        self.assertAlmostEqual(calcular_ibs(1000, categoria="reduced", reducao_especial=0.5), 20.625)

    def test_creditos(self):
        self.assertEqual(calcular_ibs(1000, creditos=500), 0.0)


class TestTotalIVA(unittest.TestCase):
    def test_total_e_soma(self):
        total = calcular_total_iva(1000)
        self.assertAlmostEqual(total["cbs"], 82.5)
        self.assertAlmostEqual(total["ibs"], 82.5)
        self.assertAlmostEqual(total["total"], 1000 * ALIQUOTAS_IVA_DUAL["standard"]["total"])

    def test_aliquotas_e_creditos_por_tributo(self):
        total = calcular_total_iva(1000, aliquotas={"cbs": 0.1, "ibs": 0.2}, creditos={"ibs": 50})
        self.assertAlmostEqual(total["cbs"], 100)
        self.assertAlmostEqual(total["ibs"], 150)
        self.assertAlmostEqual(total["total"], 250)


if __name__ == "__main__":
    unittest.main()
