"""
Cronograma de implementação da Reforma Tributária (2026-2033).

Três calendários independentes, expressos como fração (0-1) da operação já
sujeita ao novo regime:
  splitPayment : retenção do imposto no momento do pagamento
  cbs          : CBS substitui PIS/COFINS (teste em 2026, plena em 2027)
  ibs          : IBS substitui ICMS/ISS (de 2029 a 2033)
"""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)

ANO_INICIAL_TRANSICAO = 2026
ANO_FINAL_TRANSICAO = 2033
ANO_LIMITE_CRONOGRAMA = 2050

TRANSITION_YEARS = [
    {
        "ano": 2026,
        "fase": "Fase Piloto",
        "descricao": "Split Payment em 10% das operações, CBS em teste",
        "splitPayment": 0.10, "cbs": 0.10, "ibs": 0.00,
    },
    {
        "ano": 2027,
        "fase": "Transição Inicial",
        "descricao": "CBS plena, PIS/COFINS extintos",
        "splitPayment": 0.25, "cbs": 1.00, "ibs": 0.00,
    },
    {
        "ano": 2028,
        "fase": "Transição Inicial",
        "descricao": "CBS plena, ICMS/ISS ainda integrais",
        "splitPayment": 0.40, "cbs": 1.00, "ibs": 0.00,
    },
    {
        "ano": 2029,
        "fase": "Substituição Gradual (10%)",
        "descricao": "IBS em 10%, ICMS/ISS reduzidos na mesma proporção",
        "splitPayment": 0.55, "cbs": 1.00, "ibs": 0.10,
    },
    {
        "ano": 2030,
        "fase": "Substituição Gradual (25%)",
        "descricao": "IBS em 25%",
        "splitPayment": 0.70, "cbs": 1.00, "ibs": 0.25,
    },
    {
        "ano": 2031,
        "fase": "Substituição Gradual (50%)",
        "descricao": "IBS em 50%",
        "splitPayment": 0.85, "cbs": 1.00, "ibs": 0.50,
    },
    {
        "ano": 2032,
        "fase": "Substituição Gradual (75%)",
        "descricao": "IBS em 75%",
        "splitPayment": 0.95, "cbs": 1.00, "ibs": 0.75,
    },
    {
        "ano": 2033,
        "fase": "Alíquota Cheia",
        "descricao": "Plena vigência do IVA Dual, ICMS e ISS extintos",
        "splitPayment": 1.00, "cbs": 1.00, "ibs": 1.00,
    },
]

TIPOS_CRONOGRAMA = ("splitPayment", "cbs", "ibs")

CRONOGRAMAS_PADRAO = {
    tipo: {cfg["ano"]: cfg[tipo] for cfg in TRANSITION_YEARS}
    for tipo in TIPOS_CRONOGRAMA
}


def _ano_valido(ano) -> bool:
    if isinstance(ano, bool) or not isinstance(ano, (int, float)):
        return False
    if isinstance(ano, float) and math.isnan(ano):
        return False
    return ANO_INICIAL_TRANSICAO <= ano <= ANO_LIMITE_CRONOGRAMA


def obter_percentual_implementacao(
    ano,
    tipo: str = "splitPayment",
    parametros_setoriais: Optional[dict] = None,
) -> float:
    """
    Returns the implementation fraction (0-1) of the given schedule for a year.

    A sector may ship its own schedule (cronogramaProprio + cronogramas[tipo]);
    otherwise the default table is used. Years with no entry return 0 and
    years outside 2026-2050 fall back to 2026.
    """
    if not _ano_valido(ano):
        logger.warning("Ano inválido para percentual de implementação: %r. Usando %d.", ano, ANO_INICIAL_TRANSICAO)
        ano = ANO_INICIAL_TRANSICAO
    ano = int(ano)

    params = parametros_setoriais or {}
    if params.get("cronogramaProprio"):
        proprio = (params.get("cronogramas") or {}).get(tipo) or {}
        valor = proprio.get(ano, proprio.get(str(ano)))
        if isinstance(valor, (int, float)) and not isinstance(valor, bool):
            return float(valor)

    cronograma = CRONOGRAMAS_PADRAO.get(tipo)
    if cronograma is None:
        logger.warning("Tipo de cronograma desconhecido: %r. Usando splitPayment.", tipo)
        cronograma = CRONOGRAMAS_PADRAO["splitPayment"]
    return cronograma.get(ano, 0.0)
