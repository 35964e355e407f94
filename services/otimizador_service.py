"""
Combinação de estratégias de mitigação.

Efeitos sobre prazos e margem se sobrepõem quando várias estratégias atuam
juntas; por isso cada soma é reduzida por um fator de sobreposição.
"""

import logging
from itertools import combinations

from services.nucleo_calculo_service import (
    gerar_memoria_critica,
    normalizar_percentual,
    numero,
    obter_custo_estrategia,
    traduzir_nome_estrategia,
)

logger = logging.getLogger(__name__)

MAX_ESTRATEGIAS_COMBINACAO = 5

FATOR_SOBREPOSICAO_PMR = 0.8
FATOR_SOBREPOSICAO_PMP = 0.9
FATOR_SOBREPOSICAO_MARGEM = 0.85

# desconto por estratégia adicional numa combinação
DESCONTO_POR_ESTRATEGIA = 0.05

EFETIVIDADE_MINIMA_PARETO = 70


def _ativas(resultados: dict) -> dict:
    return {
        nome: resultado for nome, resultado in (resultados or {}).items()
        if resultado is not None and not resultado.get("erro")
    }


def calcular_efetividade_combinada(dados: dict, resultados: dict, impacto_base: dict) -> dict:
    """Joint monthly cash effect of the active strategies and the adjusted cycle and margin."""
    ativas = _ativas(resultados)
    if not ativas:
        return {
            "estrategiasAtivas": 0,
            "efetividadePercentual": 0,
            "mitigacaoTotal": 0,
            "custoTotal": 0,
            "custoBeneficio": 0,
            "impactosMitigados": {},
        }

    pmr, pmp, pme = numero(dados.get("pmr")), numero(dados.get("pmp")), numero(dados.get("pme"))
    margem = normalizar_percentual(dados.get("margem"))

    impacto_fluxo_caixa = 0.0
    custo_total = 0.0
    impactos_pmr, impactos_pmp, impactos_margem = [], [], []

    for nome, resultado in ativas.items():
        custo_total += obter_custo_estrategia(nome, resultado)
        if nome == "ajustePrecos":
            impacto_fluxo_caixa += numero(resultado.get("fluxoCaixaAdicional"))
        elif nome == "renegociacaoPrazos":
            impacto_fluxo_caixa += numero(resultado.get("impactoFluxoCaixa"))
            if resultado.get("impactoNovoPMP"):
                impactos_pmp.append(numero(resultado["impactoNovoPMP"]) - pmp)
        elif nome == "antecipacaoRecebiveis":
            impacto_fluxo_caixa += numero(resultado.get("impactoFluxoCaixa"))
            if resultado.get("reducaoPMR"):
                impactos_pmr.append(-numero(resultado["reducaoPMR"]))
        elif nome == "capitalGiro":
            impacto_fluxo_caixa += numero(resultado.get("valorFinanciamento"))
            if resultado.get("impactoMargemPP"):
                impactos_margem.append(-numero(resultado["impactoMargemPP"]) / 100)
        elif nome == "mixProdutos":
            impacto_fluxo_caixa += numero(resultado.get("impactoFluxoCaixa"))
            if resultado.get("impactoPMR"):
                impactos_pmr.append(-numero(resultado["impactoPMR"]))
            if resultado.get("variacaoMargem"):
                impactos_margem.append(numero(resultado["variacaoMargem"]))
        elif nome == "meiosPagamento":
            impacto_fluxo_caixa += numero(resultado.get("impactoLiquido"))
            if resultado.get("variaPMR"):
                impactos_pmr.append(numero(resultado["variaPMR"]))

    pmr_ajustado = pmr + sum(impactos_pmr) * FATOR_SOBREPOSICAO_PMR
    pmp_ajustado = pmp + sum(impactos_pmp) * FATOR_SOBREPOSICAO_PMP
    ciclo_ajustado = pmr_ajustado + pme - pmp_ajustado

    gap = abs(numero((impacto_base or {}).get("diferencaCapitalGiro")))
    efetividade = min(100.0, impacto_fluxo_caixa / gap * 100) if gap > 0 else 0.0

    return {
        "estrategiasAtivas": len(ativas),
        "efetividadePercentual": efetividade,
        "mitigacaoTotal": impacto_fluxo_caixa,
        "custoTotal": custo_total,
        "custoBeneficio": custo_total / impacto_fluxo_caixa if custo_total > 0 and impacto_fluxo_caixa else 0.0,
        "pmrAjustado": pmr_ajustado,
        "pmpAjustado": pmp_ajustado,
        "cicloFinanceiroAjustado": ciclo_ajustado,
        "variacaoCiclo": ciclo_ajustado - (pmr + pme - pmp),
        "margemAjustada": margem + sum(impactos_margem) * FATOR_SOBREPOSICAO_MARGEM,
        "impactosMitigados": ativas,
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def _avaliar(combinacao: tuple) -> dict:
    fator_desconto = 1 - DESCONTO_POR_ESTRATEGIA * (len(combinacao) - 1)
    efetividade = min(100.0, sum(e["efetividade"] * fator_desconto for e in combinacao))
    custo = sum(e["custo"] for e in combinacao)
    return {
        "estrategias": [e["nome"] for e in combinacao],
        "efetividade": efetividade,
        "custo": custo,
        "relacaoCB": custo / efetividade if efetividade > 0 else float("inf"),
    }


def _fronteira_pareto(avaliacoes: list) -> list:
    """Combinations that no other beats with strictly higher effectiveness at no greater cost."""
    fronteira = [
        avaliacao for avaliacao in avaliacoes
        if not any(
            outra["efetividade"] > avaliacao["efetividade"] and outra["custo"] <= avaliacao["custo"]
            for outra in avaliacoes
        )
    ]
    return sorted(fronteira, key=lambda a: a["efetividade"], reverse=True)


def identificar_combinacao_otima(dados: dict, resultados: dict, impacto_base: dict) -> dict:
    """
    Searches every combination of up to MAX_ESTRATEGIAS_COMBINACAO strategies
    with positive effectiveness. Prefers the cheapest Pareto-efficient
    combination reaching 70%; otherwise the most effective one on the frontier.
    """
    validas = [
        {
            "nome": nome,
            "efetividade": numero(resultado.get("efetividadePercentual")),
            "custo": obter_custo_estrategia(nome, resultado),
            "relacaoCB": numero(resultado.get("custoBeneficio")),
        }
        for nome, resultado in _ativas(resultados).items()
        if numero(resultado.get("efetividadePercentual")) > 0
    ]
    if not validas:
        return {
            "estrategiasSelecionadas": [],
            "nomeEstrategias": [],
            "efetividadePercentual": 0,
            "custoTotal": 0,
            "custoBeneficio": 0,
            "combinacoesAvaliadas": 0,
        }

    melhor_unica = min(validas, key=lambda e: e["relacaoCB"])

    tamanho_maximo = min(len(validas), MAX_ESTRATEGIAS_COMBINACAO)
    avaliacoes = [
        _avaliar(combinacao)
        for tamanho in range(1, tamanho_maximo + 1)
        for combinacao in combinations(validas, tamanho)
    ]
    logger.debug("%d combinações de estratégias avaliadas", len(avaliacoes))

    melhor_efetividade = max(avaliacoes, key=lambda a: a["efetividade"])
    melhor_relacao_cb = min(avaliacoes, key=lambda a: a["relacaoCB"])

    fronteira = _fronteira_pareto(avaliacoes)
    efetivas = [a for a in fronteira if a["efetividade"] >= EFETIVIDADE_MINIMA_PARETO]
    if efetivas:
        otima = min(efetivas, key=lambda a: a["custo"])
    elif fronteira:
        otima = fronteira[0]
    else:
        otima = melhor_relacao_cb

    def resumo(avaliacao):
        return {
            "estrategias": avaliacao["estrategias"],
            "efetividade": avaliacao["efetividade"],
            "custo": avaliacao["custo"],
        }

    return {
        "estrategiasSelecionadas": otima["estrategias"],
        "nomeEstrategias": [traduzir_nome_estrategia(nome) for nome in otima["estrategias"]],
        "efetividadePercentual": otima["efetividade"],
        "custoTotal": otima["custo"],
        "custoBeneficio": otima["relacaoCB"],
        "combinacoesAvaliadas": len(avaliacoes),
        "alternativas": {
            "melhorEfetividade": resumo(melhor_efetividade),
            "melhorRelacaoCB": resumo(melhor_relacao_cb),
            "melhorUnica": {
                "estrategia": melhor_unica["nome"],
                "efetividade": melhor_unica["efetividade"],
                "custo": melhor_unica["custo"],
            },
        },
        "memoriaCritica": gerar_memoria_critica(dados),
    }
