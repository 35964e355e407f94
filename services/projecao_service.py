"""
Projeção temporal do impacto do Split Payment ao longo da transição.

O faturamento cresce ano a ano pela taxa do cenário (composta sobre o ano
anterior) e o impacto é recalculado para cada ano do intervalo.
"""

import copy
import logging
from typing import Optional

from services.cronograma_service import ANO_FINAL_TRANSICAO, ANO_INICIAL_TRANSICAO
from services.dados_service import garantir_dados_planos, log_transformacao
from services.impacto_service import calcular_impacto_capital_giro
from services.nucleo_calculo_service import (
    calcular_analise_elasticidade,
    gerar_memoria_critica,
    normalizar_percentual,
    numero,
    obter_taxa_crescimento,
)

logger = logging.getLogger(__name__)

CENARIOS_VALIDOS = ("conservador", "moderado", "otimista", "personalizado")

# estimativas grosseiras usadas quando a projeção falha
MESES_ESTIMATIVA_FALHA = 5
TAXA_ESTIMATIVA_FALHA = 0.021
IMPACTO_MARGEM_FALHA = 0.5


def _comparacao_regimes_vazia(anos: list) -> dict:
    zeros = [0] * len(anos)
    return {
        "anos": list(anos),
        "atual": {"capitalGiro": list(zeros), "impostos": list(zeros)},
        "splitPayment": {"capitalGiro": list(zeros), "impostos": list(zeros)},
        "ivaSemSplit": {"capitalGiro": list(zeros), "impostos": list(zeros)},
        "impacto": {
            "diferencaCapitalGiro": list(zeros),
            "percentualImpacto": list(zeros),
            "necessidadeAdicional": list(zeros),
        },
    }


def _total_impostos(resultado: Optional[dict]) -> float:
    return numero(((resultado or {}).get("impostos") or {}).get("total"))


def calcular_projecao_temporal(
    dados,
    ano_inicial: int = ANO_INICIAL_TRANSICAO,
    ano_final: int = ANO_FINAL_TRANSICAO,
    cenario: str = "moderado",
    taxa_personalizada=None,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """
    Year-by-year impact between ano_inicial and ano_final.

    Raises FormatError for nested input and ValueError for a non-positive
    revenue or a year range outside 2026-2033. A failure while projecting is
    logged and a best-effort estimate is returned with an "erro" message.
    """
    dados = garantir_dados_planos(dados, "calcular_projecao_temporal")

    faturamento = dados.get("faturamento")
    if numero(faturamento) <= 0:
        raise ValueError("Faturamento inválido ou não positivo")
    if not ANO_INICIAL_TRANSICAO <= ano_inicial <= ano_final <= ANO_FINAL_TRANSICAO:
        raise ValueError(
            f"Intervalo de anos inválido. O período deve estar entre {ANO_INICIAL_TRANSICAO} e "
            f"{ANO_FINAL_TRANSICAO}, com ano inicial menor ou igual ao final."
        )

    if cenario not in CENARIOS_VALIDOS:
        logger.warning("Cenário %r inválido. Utilizando 'moderado' como padrão.", cenario)
        cenario = "moderado"
    taxa_crescimento = obter_taxa_crescimento(cenario, taxa_personalizada)

    parametros = {
        "anoInicial": ano_inicial,
        "anoFinal": ano_final,
        "cenarioTaxaCrescimento": cenario,
        "taxaCrescimento": taxa_crescimento,
    }

    try:
        resultados_anuais = {}
        impacto_acumulado = {
            "totalNecessidadeCapitalGiro": 0.0,
            "custoFinanceiroTotal": 0.0,
            "impactoMedioMargem": 0.0,
        }
        comparacao = _comparacao_regimes_vazia([])
        soma_impacto_margem = 0.0

        dados_ano = copy.deepcopy(dados)
        for ano in range(ano_inicial, ano_final + 1):
            impacto = calcular_impacto_capital_giro(dados_ano, ano, parametros_setoriais, provider)
            resultados_anuais[ano] = impacto

            impacto_acumulado["totalNecessidadeCapitalGiro"] += numero(impacto.get("necessidadeAdicionalCapitalGiro"))
            impacto_acumulado["custoFinanceiroTotal"] += numero(
                (impacto.get("impactoMargemDetalhado") or {}).get("custoAnualCapitalGiro")
            )
            soma_impacto_margem += numero(impacto.get("impactoMargem"))

            comparacao["anos"].append(ano)
            for chave, regime in (
                ("atual", "resultadoAtual"),
                ("splitPayment", "resultadoSplitPayment"),
                ("ivaSemSplit", "resultadoIVASemSplit"),
            ):
                resultado_regime = impacto.get(regime) or {}
                comparacao[chave]["capitalGiro"].append(numero(resultado_regime.get("capitalGiroDisponivel")))
                comparacao[chave]["impostos"].append(_total_impostos(resultado_regime))
            comparacao["impacto"]["diferencaCapitalGiro"].append(numero(impacto.get("diferencaCapitalGiro")))
            comparacao["impacto"]["percentualImpacto"].append(numero(impacto.get("percentualImpacto")))
            comparacao["impacto"]["necessidadeAdicional"].append(
                numero(impacto.get("necessidadeAdicionalCapitalGiro"))
            )

            dados_ano["faturamento"] = round(numero(dados_ano["faturamento"]) * (1 + taxa_crescimento), 2)

        impacto_acumulado["impactoMedioMargem"] = soma_impacto_margem / (ano_final - ano_inicial + 1)

        resultado = {
            "parametros": parametros,
            "resultadosAnuais": resultados_anuais,
            "impactoAcumulado": impacto_acumulado,
            "comparacaoRegimes": comparacao,
            "analiseElasticidade": calcular_analise_elasticidade(dados, ano_inicial, ano_final),
            "memoriaCritica": gerar_memoria_critica(dados, {
                "diferencaCapitalGiro": resultados_anuais[ano_inicial].get("diferencaCapitalGiro", 0),
            }),
        }
        log_transformacao(dados, resultado, "Projeção Temporal do Impacto do Split Payment")
        return resultado

    except Exception as e:
        logger.exception("Erro ao calcular projeção temporal")
        faturamento = numero(dados.get("faturamento"))
        aliquota = normalizar_percentual(dados.get("aliquota"), 0.265)
        necessidade_estimada = faturamento * aliquota * MESES_ESTIMATIVA_FALHA
        return {
            "parametros": parametros,
            "erro": f"Falha na projeção: {e}",
            "impactoAcumulado": {
                "totalNecessidadeCapitalGiro": necessidade_estimada,
                "custoFinanceiroTotal": necessidade_estimada * TAXA_ESTIMATIVA_FALHA * 12,
                "impactoMedioMargem": IMPACTO_MARGEM_FALHA,
            },
            "resultadosAnuais": {},
            "comparacaoRegimes": _comparacao_regimes_vazia([ano_inicial, ano_final]),
        }
