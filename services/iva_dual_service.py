"""
IVA Dual (CBS federal + IBS estadual/municipal) - fórmulas básicas.

Alíquotas de referência:
  CBS: 8,25%   IBS: 8,25%   (total 16,5%)
  Categoria reduzida: 50% da alíquota; isenta: zero.
"""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)

ALIQUOTAS_IVA_DUAL = {
    "standard": {"cbs": 0.0825, "ibs": 0.0825, "total": 0.165},
    "reduced":  {"cbs": 0.04125, "ibs": 0.04125, "total": 0.0825},
    "exempt":   {"cbs": 0.0, "ibs": 0.0, "total": 0.0},
}

FATOR_CATEGORIA = {
    "standard": 1.0,
    "reduced":  0.5,
    "exempt":   0.0,
}


def _coagir(valor, padrao: float, campo: str) -> float:
    if isinstance(valor, bool) or not isinstance(valor, (int, float)) or math.isnan(valor):
        logger.warning("%s inválido (%r), usando %s", campo, valor, padrao)
        return padrao
    return float(valor)


def _aliquota_aplicada(aliquota: float, categoria: str) -> float:
    fator = FATOR_CATEGORIA.get(categoria)
    if fator is None:
        logger.warning("Categoria de IVA desconhecida (%r), tratada como standard", categoria)
        fator = 1.0
    return aliquota * fator


def calcular_cbs(
    base,
    aliquota=ALIQUOTAS_IVA_DUAL["standard"]["cbs"],
    creditos=0,
    categoria: str = "standard",
) -> float:
    """CBS due on base, never negative."""
    base = _coagir(base, 0.0, "Base de cálculo da CBS")
    aliquota = _coagir(aliquota, ALIQUOTAS_IVA_DUAL["standard"]["cbs"], "Alíquota da CBS")
    creditos = _coagir(creditos, 0.0, "Créditos de CBS")

    imposto = base * _aliquota_aplicada(aliquota, categoria)
    return max(0.0, imposto - creditos)


def calcular_ibs(
    base,
    aliquota=ALIQUOTAS_IVA_DUAL["standard"]["ibs"],
    creditos=0,
    categoria: str = "standard",
    reducao_especial=0,
) -> float:
    """IBS due on base. reducao_especial is an extra sector cut applied on top of the category."""
    base = _coagir(base, 0.0, "Base de cálculo do IBS")
    aliquota = _coagir(aliquota, ALIQUOTAS_IVA_DUAL["standard"]["ibs"], "Alíquota do IBS")
    creditos = _coagir(creditos, 0.0, "Créditos de IBS")
    reducao_especial = _coagir(reducao_especial, 0.0, "Redução especial do IBS")

    aplicada = _aliquota_aplicada(aliquota, categoria)
    if reducao_especial > 0:
        aplicada *= 1 - reducao_especial

    return max(0.0, base * aplicada - creditos)


def calcular_total_iva(
    base,
    aliquotas: Optional[dict] = None,
    creditos: Optional[dict] = None,
    categoria: str = "standard",
) -> dict:
    aliquotas = aliquotas or {}
    creditos = creditos or {}
    cbs = calcular_cbs(
        base, aliquotas.get("cbs", ALIQUOTAS_IVA_DUAL["standard"]["cbs"]), creditos.get("cbs", 0), categoria
    )
    ibs = calcular_ibs(
        base, aliquotas.get("ibs", ALIQUOTAS_IVA_DUAL["standard"]["ibs"]), creditos.get("ibs", 0), categoria
    )
    return {"cbs": cbs, "ibs": ibs, "total": cbs + ibs}
