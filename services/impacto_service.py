"""
Impacto do Split Payment no capital de giro.

Compara três regimes para um mesmo ano:
  atual        : PIS/COFINS/ICMS/IPI/ISS, imposto recolhido no mês seguinte
  IVA sem Split: tributos da transição, mesmo capital de giro do regime atual
  Split Payment: tributos da transição, fração do imposto retida na fonte
"""

import copy
import logging
from typing import Optional

from models.erros import CalculationError
from services.config import FATOR_SEGURANCA
from services.dados_service import garantir_dados_planos, log_transformacao
from services.fluxo_caixa_service import calcular_fluxo_caixa_split_payment
from services.nucleo_calculo_service import (
    calcular_fator_crescimento,
    calcular_fator_sazonalidade,
    calcular_impacto_resultado,
    calcular_opcoes_financiamento,
    gerar_memoria_critica,
    normalizar_percentual,
    numero,
)
from services.sistema_atual_service import SistemaTributarioAtual, calcular_impacto_margem
from services.transicao_service import calcular_transicao_iva_dual

logger = logging.getLogger(__name__)

PERCENTUAIS_SENSIBILIDADE = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0)

# dias de faturamento perdidos por ponto de implementação na estimativa simplificada
DIAS_IMPACTO_SIMPLIFICADO = 15

CAMPOS_IMPACTO_BASE = (
    "resultadoAtual",
    "resultadoSplitPayment",
    "resultadoIVASemSplit",
    "diferencaCapitalGiro",
    "diferencaCapitalGiroIVASemSplit",
    "percentualImpacto",
    "percentualImpactoIVASemSplit",
    "necessidadeAdicionalCapitalGiro",
    "necessidadeAdicionalCapitalGiroIVASemSplit",
    "impactoDiasFaturamento",
    "impactoDiasFaturamentoIVASemSplit",
    "margemOperacionalOriginal",
    "margemOperacionalAjustada",
    "margemOperacionalAjustadaIVASemSplit",
    "impactoMargem",
    "impactoMargemIVASemSplit",
)


def _parametros_completos(dados: dict, parametros_setoriais: Optional[dict]) -> dict:
    """Sector parameters completed with the schedule and IVA settings carried in dados."""
    setor = dict(parametros_setoriais or {})
    if not setor.get("cronogramaProprio") and dados.get("cronogramaProprio") and dados.get("cronogramaImplementacao"):
        setor["cronogramaProprio"] = True
        setor["cronogramas"] = {"splitPayment": dados["cronogramaImplementacao"]}
    for chave_setor, chave_dados in (
        ("aliquotaCBS", "aliquotaCBS"),
        ("aliquotaIBS", "aliquotaIBS"),
        ("categoriaIva", "categoriaIVA"),
        ("reducaoEspecial", "reducaoEspecial"),
    ):
        if not setor.get(chave_setor) and dados.get(chave_dados):
            setor[chave_setor] = dados[chave_dados]
    return setor


def calcular_impacto_capital_giro(
    dados,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
    usar_fallback: bool = True,
) -> dict:
    """
    Working-capital impact of Split Payment for one year.

    Raises FormatError for nested input. Any other failure is wrapped in a
    CalculationError; with usar_fallback (the default) it is logged and the
    simplified estimate is returned instead.
    """
    dados = garantir_dados_planos(dados, "calcular_impacto_capital_giro")
    provider = provider if provider is not None else SistemaTributarioAtual()

    try:
        return _calcular_impacto_completo(dados, ano, parametros_setoriais, provider)
    except Exception as e:
        erro = CalculationError(f"Erro ao calcular impacto no capital de giro: {e}", etapa="impacto")
        if not usar_fallback:
            raise erro from e
        logger.exception("Erro ao calcular impacto no capital de giro (ano %s); usando estimativa simplificada", ano)
        return calcular_impacto_capital_giro_simplificado(dados, ano, parametros_setoriais, provider)


def _calcular_impacto_completo(dados: dict, ano: int, parametros_setoriais: Optional[dict], provider) -> dict:
    considerar_split_payment = dados.get("splitPayment") is not False
    setor = _parametros_completos(dados, parametros_setoriais)

    resultado_atual = provider.calcular_fluxo_caixa_atual(dados)

    impostos_iva = None
    if resultado_atual.get("impostos"):
        impostos_iva = calcular_transicao_iva_dual(
            dados.get("faturamento"), ano, resultado_atual["impostos"],
            parametros_setoriais=setor, dados=dados, provider=provider,
        )

    resultado_iva_sem_split = copy.deepcopy(resultado_atual)
    resultado_iva_sem_split["descricao"] = "Sistema IVA Dual sem Split Payment"
    if impostos_iva:
        # sem Split o capital de giro é o mesmo do regime atual; mudam só os tributos
        resultado_iva_sem_split["impostos"] = copy.deepcopy(impostos_iva)
        resultado_iva_sem_split["valorImpostoTotal"] = impostos_iva["total"]
        resultado_iva_sem_split["valorImpostoLiquido"] = impostos_iva["total"]

    if considerar_split_payment:
        resultado_split_payment = calcular_fluxo_caixa_split_payment(dados, ano, setor, provider)
        if impostos_iva:
            resultado_split_payment["impostos"] = copy.deepcopy(impostos_iva)

        percentual_implementacao = provider.obter_percentual_implementacao(ano, "splitPayment", setor)
        valor_imposto_split = resultado_atual["valorImpostoLiquido"] * percentual_implementacao
        resultado_split_payment["capitalGiroDisponivel"] = (
            resultado_atual["capitalGiroDisponivel"] - valor_imposto_split
        )
        # dias de faturamento na mesma convenção de capital do regime atual
        resultado_split_payment["tempoMedioCapitalGiro"] = resultado_atual["tempoMedioCapitalGiro"]
        resultado_split_payment["beneficioDiasCapitalGiro"] = (
            resultado_split_payment["capitalGiroDisponivel"] / resultado_atual["faturamento"]
            * resultado_atual["tempoMedioCapitalGiro"]
            if resultado_atual["faturamento"] > 0 else 0.0
        )
        logger.debug("Capital de giro com Split Payment (%s): percentual=%.2f imposto retido=%.2f capital=%.2f",
                     ano, percentual_implementacao, valor_imposto_split,
                     resultado_split_payment["capitalGiroDisponivel"])
    else:
        resultado_split_payment = copy.deepcopy(resultado_iva_sem_split)

    capital_atual = resultado_atual["capitalGiroDisponivel"]
    diferenca = resultado_split_payment["capitalGiroDisponivel"] - capital_atual
    diferenca_sem_split = resultado_iva_sem_split["capitalGiroDisponivel"] - capital_atual

    percentual_impacto = diferenca / capital_atual * 100 if capital_atual else 0.0
    percentual_impacto_sem_split = diferenca_sem_split / capital_atual * 100 if capital_atual else 0.0

    margem_detalhada = calcular_impacto_margem(dados, diferenca)
    margem_detalhada_sem_split = calcular_impacto_margem(dados, diferenca_sem_split)

    resultado = {
        "ano": ano,
        "resultadoAtual": resultado_atual,
        "resultadoSplitPayment": resultado_split_payment,
        "resultadoIVASemSplit": resultado_iva_sem_split,
        "diferencaCapitalGiro": diferenca,
        "diferencaCapitalGiroIVASemSplit": diferenca_sem_split,
        "percentualImpacto": percentual_impacto,
        "percentualImpactoIVASemSplit": percentual_impacto_sem_split,
        "necessidadeAdicionalCapitalGiro": abs(diferenca) * FATOR_SEGURANCA,
        "necessidadeAdicionalCapitalGiroIVASemSplit": abs(diferenca_sem_split) * FATOR_SEGURANCA,
        "impactoDiasFaturamento": (
            resultado_atual["beneficioDiasCapitalGiro"] - resultado_split_payment["beneficioDiasCapitalGiro"]
        ),
        "impactoDiasFaturamentoIVASemSplit": (
            resultado_atual["beneficioDiasCapitalGiro"] - resultado_iva_sem_split["beneficioDiasCapitalGiro"]
        ),
        "margemOperacionalOriginal": margem_detalhada["margemOriginal"],
        "margemOperacionalAjustada": margem_detalhada["margemAjustada"],
        "margemOperacionalAjustadaIVASemSplit": margem_detalhada_sem_split["margemAjustada"],
        "impactoMargem": margem_detalhada["impactoPercentual"],
        "impactoMargemIVASemSplit": margem_detalhada_sem_split["impactoPercentual"],
        "impactoMargemDetalhado": margem_detalhada,
        "impactoMargemDetalhadoIVASemSplit": margem_detalhada_sem_split,
        "splitPaymentConsiderado": considerar_split_payment,
    }
    resultado["impactoBase"] = {campo: copy.deepcopy(resultado[campo]) for campo in CAMPOS_IMPACTO_BASE}
    resultado["analiseSensibilidade"] = calcular_analise_sensibilidade_simplificada(
        dados, ano, diferenca, setor, provider
    )

    log_transformacao(dados, resultado, "Cálculo de Impacto no Capital de Giro")
    return resultado


def calcular_impacto_capital_giro_simplificado(
    dados,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """Rough estimate: the whole gross tax times the implementation fraction leaves working capital."""
    dados = garantir_dados_planos(dados, "calcular_impacto_capital_giro_simplificado")
    provider = provider if provider is not None else SistemaTributarioAtual()

    faturamento = numero(dados.get("faturamento")) or 1.0
    aliquota = normalizar_percentual(dados.get("aliquota"), 0.265)
    percentual_implementacao = provider.obter_percentual_implementacao(
        ano, "splitPayment", _parametros_completos(dados, parametros_setoriais)
    )

    diferenca = -faturamento * aliquota * percentual_implementacao
    margem_detalhada = calcular_impacto_margem({**dados, "faturamento": faturamento}, diferenca)

    return {
        "ano": ano,
        "simplificado": True,
        "diferencaCapitalGiro": diferenca,
        "percentualImpacto": -100 * percentual_implementacao,
        "necessidadeAdicionalCapitalGiro": abs(diferenca) * FATOR_SEGURANCA,
        "impactoDiasFaturamento": DIAS_IMPACTO_SIMPLIFICADO * percentual_implementacao,
        "margemOperacionalOriginal": margem_detalhada["margemOriginal"],
        "margemOperacionalAjustada": margem_detalhada["margemAjustada"],
        "impactoMargem": margem_detalhada["impactoPercentual"],
        "impactoMargemDetalhado": margem_detalhada,
        "splitPaymentConsiderado": dados.get("splitPayment") is not False,
    }


def calcular_analise_sensibilidade_simplificada(
    dados: dict,
    ano: int,
    diferenca_capital_giro,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """Extrapolates the year's capital gap to every implementation level from 10% to 100%."""
    provider = provider if provider is not None else SistemaTributarioAtual()
    percentual_original = provider.obter_percentual_implementacao(ano, "splitPayment", parametros_setoriais)

    impacto_total = abs(numero(diferenca_capital_giro) / percentual_original) if percentual_original > 0 else 0.0
    resultados = {percentual: -impacto_total * percentual for percentual in PERCENTUAIS_SENSIBILIDADE}
    impacto_por_percentual = abs(resultados[1.0] / 100)

    return {
        "percentuais": list(PERCENTUAIS_SENSIBILIDADE),
        "resultados": resultados,
        "percentualOriginal": percentual_original,
        "impactoPorPercentual": impacto_por_percentual,
        "impactoPor10Percent": impacto_por_percentual * 10,
    }


def calcular_necessidade_adicional_capital(
    dados,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """Extra working capital to raise, with safety, seasonality and growth factors, and how to fund it."""
    dados = garantir_dados_planos(dados, "calcular_necessidade_adicional_capital")
    impacto = calcular_impacto_capital_giro(dados, ano, parametros_setoriais, provider)

    necessidade_basica = abs(impacto["diferencaCapitalGiro"])
    fator_sazonalidade = calcular_fator_sazonalidade(dados)
    fator_crescimento = calcular_fator_crescimento(dados, ano)
    necessidade_total = necessidade_basica * FATOR_SEGURANCA * fator_sazonalidade * fator_crescimento

    opcoes = calcular_opcoes_financiamento(dados, necessidade_total)

    return {
        "necessidadeBasica": necessidade_basica,
        "fatorMargemSeguranca": FATOR_SEGURANCA,
        "fatorSazonalidade": fator_sazonalidade,
        "fatorCrescimento": fator_crescimento,
        "necessidadeComMargemSeguranca": necessidade_basica * FATOR_SEGURANCA,
        "necessidadeComSazonalidade": necessidade_basica * fator_sazonalidade,
        "necessidadeComCrescimento": necessidade_basica * fator_crescimento,
        "necessidadeTotal": necessidade_total,
        "opcoesFinanciamento": opcoes,
        "impactoResultado": calcular_impacto_resultado(dados, opcoes["opcaoRecomendada"]["custoAnual"]),
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def calcular_impacto_ciclo_financeiro(
    dados,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """Split Payment expressed as extra days in the financial cycle and the resulting NCG change."""
    dados = garantir_dados_planos(dados, "calcular_impacto_ciclo_financeiro")
    provider = provider if provider is not None else SistemaTributarioAtual()

    pmr = numero(dados.get("pmr"))
    pmp = numero(dados.get("pmp"))
    pme = numero(dados.get("pme"))
    faturamento = max(0.0, numero(dados.get("faturamento")))
    aliquota = normalizar_percentual(dados.get("aliquota"))

    ciclo_atual = pmr + pme - pmp
    percentual_implementacao = provider.obter_percentual_implementacao(
        ano, "splitPayment", _parametros_completos(dados, parametros_setoriais)
    )

    imposto_split = faturamento * aliquota * percentual_implementacao
    dias_adicionais = imposto_split / faturamento * 30 if faturamento > 0 else 0.0
    ciclo_ajustado = ciclo_atual + dias_adicionais

    ncg_atual = faturamento / 30 * ciclo_atual
    ncg_ajustada = faturamento / 30 * ciclo_ajustado

    return {
        "cicloFinanceiroAtual": ciclo_atual,
        "cicloFinanceiroAjustado": ciclo_ajustado,
        "diasAdicionais": dias_adicionais,
        "percentualImplementacao": percentual_implementacao,
        "ncgAtual": ncg_atual,
        "ncgAjustada": ncg_ajustada,
        "diferencaNCG": ncg_ajustada - ncg_atual,
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def comparar_resultados(resultado_atual: dict, resultado_iva: dict) -> dict:
    capital_atual = numero(resultado_atual.get("capitalGiroDisponivel"))
    diferenca = numero(resultado_iva.get("capitalGiroDisponivel")) - capital_atual

    comparacao_impostos = None
    if resultado_iva.get("impostosIVA"):
        total_atual = numero((resultado_atual.get("impostos") or {}).get("total"))
        total_iva = numero(resultado_iva["impostosIVA"].get("total"))
        comparacao_impostos = {
            "atual": total_atual,
            "ivaDual": total_iva,
            "diferenca": total_iva - total_atual,
            "percentualVariacao": (total_iva - total_atual) / total_atual * 100 if total_atual > 0 else 0.0,
        }

    def resumo(resultado):
        return {
            "fluxoCaixaLiquido": resultado.get("fluxoCaixaLiquido"),
            "capitalGiroDisponivel": resultado.get("capitalGiroDisponivel"),
            "beneficioDiasCapitalGiro": resultado.get("beneficioDiasCapitalGiro"),
        }

    return {
        "diferencaCapitalGiro": diferenca,
        "percentualImpacto": diferenca / capital_atual * 100 if capital_atual else 0.0,
        "impactoDiasFaturamento": (
            numero(resultado_atual.get("beneficioDiasCapitalGiro"))
            - numero(resultado_iva.get("beneficioDiasCapitalGiro"))
        ),
        "comparacaoImpostos": comparacao_impostos,
        "resultadoAtual": resumo(resultado_atual),
        "resultadoIVADual": resumo(resultado_iva),
    }
