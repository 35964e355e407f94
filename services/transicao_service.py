"""
Transição do sistema atual para o IVA Dual (2026-2033).

A cada ano, a fração implementada de cada tributo novo substitui a mesma
fração dos tributos antigos:
  CBS : substitui PIS/COFINS (10% em 2026, plena a partir de 2027)
  IBS : substitui ICMS/ISS   (10% em 2029 até 100% em 2033)
"""

import logging
from typing import Optional

from services.cronograma_service import ANO_FINAL_TRANSICAO, ANO_INICIAL_TRANSICAO
from services.iva_dual_service import ALIQUOTAS_IVA_DUAL, calcular_cbs, calcular_ibs
from services.nucleo_calculo_service import TAXAS_CRESCIMENTO, numero
from services.sistema_atual_service import SistemaTributarioAtual

logger = logging.getLogger(__name__)

# ── Cronograma usado na evolução por composição tributária do SPED ─────────
#
# o IBS aqui também absorve o IPI
#
CRONOGRAMA_DETALHADO = {
    "cbs": {2026: 0.10, 2027: 1.00, 2028: 1.00, 2029: 1.00, 2030: 1.00, 2031: 1.00, 2032: 1.00, 2033: 1.00},
    "ibs": {2026: 0.00, 2027: 0.00, 2028: 0.00, 2029: 0.10, 2030: 0.25, 2031: 0.50, 2032: 0.75, 2033: 1.00},
}

# redução estimada da carga na migração
FATOR_REDUCAO_CBS = 0.95
FATOR_REDUCAO_IBS = 0.97

IMPOSTOS_SPED = ("pis", "cofins", "icms", "ipi")


def _provider_padrao(provider):
    return provider if provider is not None else SistemaTributarioAtual()


def _primeiro_valor(*valores, padrao):
    # valores zerados ou ausentes passam adiante
    for valor in valores:
        if valor:
            return valor
    return padrao


def calcular_transicao_iva_dual(
    base,
    ano: int,
    impostos_atuais: dict,
    parametros_setoriais: Optional[dict] = None,
    dados: Optional[dict] = None,
    provider=None,
) -> dict:
    """
    Blends the current taxes with CBS/IBS for the given year.

    Rates, IVA category and the special IBS reduction are taken from dados,
    then from the sector parameters, then from the standard table. The
    returned dict is a new one; impostos_atuais is left untouched.
    """
    provider = _provider_padrao(provider)
    setor = parametros_setoriais or {}
    dados = dados or {}
    resultado = dict(impostos_atuais or {})

    percentual_cbs = provider.obter_percentual_implementacao(ano, "cbs", parametros_setoriais)
    percentual_ibs = provider.obter_percentual_implementacao(ano, "ibs", parametros_setoriais)

    aliquota_cbs = _primeiro_valor(dados.get("aliquotaCBS"), setor.get("aliquotaCBS"),
                                   padrao=ALIQUOTAS_IVA_DUAL["standard"]["cbs"])
    aliquota_ibs = _primeiro_valor(dados.get("aliquotaIBS"), setor.get("aliquotaIBS"),
                                   padrao=ALIQUOTAS_IVA_DUAL["standard"]["ibs"])
    categoria = _primeiro_valor(dados.get("categoriaIVA"), setor.get("categoriaIva"), padrao="standard")
    reducao_especial = _primeiro_valor(dados.get("reducaoEspecial"), setor.get("reducaoEspecial"), padrao=0)

    if percentual_cbs > 0:
        resultado["cbs"] = calcular_cbs(base, aliquota_cbs, 0, categoria) * percentual_cbs
        for imposto in ("pis", "cofins"):
            if resultado.get(imposto):
                resultado[imposto] *= 1 - percentual_cbs
    else:
        resultado["cbs"] = 0.0

    if percentual_ibs > 0:
        resultado["ibs"] = calcular_ibs(base, aliquota_ibs, 0, categoria, reducao_especial) * percentual_ibs
        for imposto in ("icms", "iss"):
            if resultado.get(imposto):
                resultado[imposto] *= 1 - percentual_ibs
    else:
        resultado["ibs"] = 0.0

    resultado["total"] = sum(
        valor for chave, valor in resultado.items()
        if chave != "total" and isinstance(valor, (int, float)) and not isinstance(valor, bool)
    )

    logger.debug("Impostos de transição para %s (CBS=%.0f%%, IBS=%.0f%%): %s",
                 ano, percentual_cbs * 100, percentual_ibs * 100, resultado)
    return resultado


def calcular_evolucao_tributaria_detalhada(
    composicao: Optional[dict],
    faturamento_base,
    parametros: Optional[dict] = None,
) -> dict:
    """
    Year-by-year evolution of each tax starting from a SPED tax composition
    (debitos/creditos per tax). Effective rates are the net tax over the
    base revenue; revenue grows by the scenario rate every year.
    """
    composicao = composicao or {}
    parametros = parametros or {}
    faturamento_base = max(0.0, numero(faturamento_base))

    cenario = parametros.get("cenario") or "moderado"
    if cenario == "personalizado":
        taxa_crescimento = numero(parametros.get("taxaCrescimento")) or TAXAS_CRESCIMENTO["moderado"]
    else:
        taxa_crescimento = TAXAS_CRESCIMENTO.get(cenario, TAXAS_CRESCIMENTO["moderado"])

    debitos = composicao.get("debitos") or {}
    creditos = composicao.get("creditos") or {}
    impostos_liquidos = {
        imposto: max(0.0, numero(debitos.get(imposto)) - numero(creditos.get(imposto)))
        for imposto in IMPOSTOS_SPED
    }
    aliquotas_efetivas = {
        imposto: valor / faturamento_base if faturamento_base > 0 else 0.0
        for imposto, valor in impostos_liquidos.items()
    }
    aliquota_cbs = (aliquotas_efetivas["pis"] + aliquotas_efetivas["cofins"]) * FATOR_REDUCAO_CBS
    aliquota_ibs = (aliquotas_efetivas["icms"] + aliquotas_efetivas["ipi"]) * FATOR_REDUCAO_IBS

    logger.debug("Evolução tributária: base=%s taxa=%s efetivas=%s",
                 faturamento_base, taxa_crescimento, aliquotas_efetivas)

    evolucao = {
        "anos": [],
        "evolucaoPorAno": {},
        "totaisPorImposto": {imposto: [] for imposto in ("pis", "cofins", "icms", "ipi", "ibs", "cbs", "total")},
        "parametrosUtilizados": {
            "faturamentoBase": faturamento_base,
            "cenario": cenario,
            "taxaCrescimento": taxa_crescimento,
        },
    }

    def crescimento(valor):
        return (valor - faturamento_base) / faturamento_base * 100 if faturamento_base > 0 else 0.0

    for ano in range(ANO_INICIAL_TRANSICAO, ANO_FINAL_TRANSICAO + 1):
        faturamento_ano = faturamento_base * (1 + taxa_crescimento) ** (ano - ANO_INICIAL_TRANSICAO)
        perc_cbs = CRONOGRAMA_DETALHADO["cbs"][ano]
        perc_ibs = CRONOGRAMA_DETALHADO["ibs"][ano]

        valores = {
            "pis": faturamento_ano * aliquotas_efetivas["pis"] * (1 - perc_cbs),
            "cofins": faturamento_ano * aliquotas_efetivas["cofins"] * (1 - perc_cbs),
            "icms": faturamento_ano * aliquotas_efetivas["icms"] * (1 - perc_ibs),
            "ipi": faturamento_ano * aliquotas_efetivas["ipi"] * (1 - perc_ibs),
            "ibs": faturamento_ano * aliquota_ibs * perc_ibs,
            "cbs": faturamento_ano * aliquota_cbs * perc_cbs,
        }
        valores["total"] = sum(valores.values())

        evolucao["anos"].append(ano)
        evolucao["evolucaoPorAno"][ano] = {
            "faturamento": faturamento_ano,
            **valores,
            "percentuaisCBS": perc_cbs * 100,
            "percentuaisIBS": perc_ibs * 100,
            "crescimentoAcumulado": crescimento(faturamento_ano),
            "aliquotasEfetivas": {imposto: aliquota * 100 for imposto, aliquota in aliquotas_efetivas.items()},
        }
        for imposto, valor in valores.items():
            evolucao["totaisPorImposto"][imposto].append(valor)

    primeiro = evolucao["evolucaoPorAno"][ANO_INICIAL_TRANSICAO]
    ultimo = evolucao["evolucaoPorAno"][ANO_FINAL_TRANSICAO]
    evolucao["estatisticas"] = {
        "crescimentoTotalFaturamento": crescimento(ultimo["faturamento"]),
        "variacaoTotalImpostos": (
            (ultimo["total"] - primeiro["total"]) / primeiro["total"] * 100 if primeiro["total"] > 0 else 0.0
        ),
        "economiaEstimadaReforma": calcular_economia_estimada_reforma(evolucao, aliquotas_efetivas),
    }
    return evolucao


def calcular_economia_estimada_reforma(evolucao: dict, aliquotas_efetivas: dict) -> dict:
    """Tax paid over the transition versus keeping the current system throughout."""
    aliquota_atual = sum(numero(aliquotas_efetivas.get(imposto)) for imposto in IMPOSTOS_SPED)

    total_sistema_atual = 0.0
    total_sistema_reformado = 0.0
    for ano in evolucao.get("anos", []):
        dados_ano = evolucao["evolucaoPorAno"][ano]
        total_sistema_atual += dados_ano["faturamento"] * aliquota_atual
        total_sistema_reformado += dados_ano["total"]

    economia = total_sistema_atual - total_sistema_reformado
    return {
        "totalSistemaAtual": total_sistema_atual,
        "totalSistemaReformado": total_sistema_reformado,
        "economia": economia,
        "percentualEconomia": economia / total_sistema_atual * 100 if total_sistema_atual > 0 else 0.0,
    }
