"""
Estratégias de mitigação do impacto do Split Payment no capital de giro.

Cada avaliador recebe (dados, estrategia, impacto_base) e mede quanto do
capital de giro perdido a estratégia recupera:
  ajustePrecos          : repasse de preço, limitado pela elasticidade
  renegociacaoPrazos    : prazo maior com fornecedores
  antecipacaoRecebiveis : desconto de vendas a prazo
  capitalGiro           : captação de recursos
  mixProdutos           : mudança no mix de produtos
  meiosPagamento        : incentivo a prazos de recebimento menores

Configuração inválida devolve {"erro", "efetividadePercentual": 0}.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from services.dados_service import garantir_dados_planos
from services.impacto_service import calcular_impacto_capital_giro
from services.nucleo_calculo_service import (
    gerar_memoria_critica,
    normalizar_percentual,
    numero,
    obter_custo_estrategia,
    traduzir_nome_estrategia,
)
from services.otimizador_service import calcular_efetividade_combinada, identificar_combinacao_otima

logger = logging.getLogger(__name__)

# meses de efeito considerados na análise
DURACAO_EFEITO = 12

# parcela dos custos paga a fornecedores
PARCELA_FORNECEDORES = 0.7

# custo de implementação de uma mudança de mix, sobre o valor ajustado
CUSTO_IMPLEMENTACAO_MIX = 0.1


def _gap(impacto_base: dict) -> float:
    return abs(numero((impacto_base or {}).get("diferencaCapitalGiro")))


def _efetividade(valor, gap: float) -> float:
    return numero(valor) / gap * 100 if gap > 0 else 0.0


def _razao(numerador, denominador) -> float:
    return numero(numerador) / denominador if denominador else 0.0


def _ciclo(pmr, pme, pmp) -> float:
    return pmr + pme - pmp


def _erro(mensagem: str) -> dict:
    logger.warning("Estratégia mal configurada: %s", mensagem)
    return {"erro": mensagem, "efetividadePercentual": 0}


def calcular_efetividade_ajuste_precos(dados: dict, estrategia: dict, impacto_base: dict) -> dict:
    percentual_aumento = numero(estrategia.get("percentualAumento")) / 100
    elasticidade = numero(estrategia.get("elasticidade"))
    periodo_ajuste = numero(estrategia.get("periodoAjuste"))
    faturamento = numero(dados.get("faturamento"))
    margem = normalizar_percentual(dados.get("margem"))

    impacto_vendas = percentual_aumento * elasticidade
    faturamento_ajustado = faturamento * (1 + percentual_aumento) * (1 + impacto_vendas)
    fluxo_caixa_adicional = (faturamento_ajustado - faturamento) * margem
    mitigacao_total = fluxo_caixa_adicional * periodo_ajuste

    # custo: receita perdida pela elasticidade
    custo_estrategia = max(0.0, faturamento * abs(impacto_vendas)) * periodo_ajuste

    return {
        "faturamentoOriginal": faturamento,
        "faturamentoAjustado": faturamento_ajustado,
        "percentualAumento": percentual_aumento,
        "elasticidade": elasticidade,
        "impactoVendas": impacto_vendas,
        "fluxoCaixaAdicional": fluxo_caixa_adicional,
        "mitigacaoMensal": fluxo_caixa_adicional,
        "mitigacaoTotal": mitigacao_total,
        "efetividadePercentual": _efetividade(mitigacao_total, _gap(impacto_base)),
        "custoEstrategia": custo_estrategia,
        "custoBeneficio": _razao(custo_estrategia, mitigacao_total) if custo_estrategia > 0 else 0.0,
        "periodoAjuste": periodo_ajuste,
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def calcular_efetividade_renegociacao_prazos(dados: dict, estrategia: dict, impacto_base: dict) -> dict:
    aumento_prazo = numero(estrategia.get("aumentoPrazo"))
    percentual_fornecedores = numero(estrategia.get("percentualFornecedores")) / 100
    custo_contrapartida = numero(estrategia.get("custoContrapartida")) / 100
    faturamento = numero(dados.get("faturamento"))
    margem = normalizar_percentual(dados.get("margem"))
    pmr, pmp, pme = numero(dados.get("pmr")), numero(dados.get("pmp")), numero(dados.get("pme"))

    pagamentos_fornecedores = faturamento * (1 - margem) * PARCELA_FORNECEDORES
    impacto_fluxo_caixa = (
        pagamentos_fornecedores / 30 * aumento_prazo * percentual_fornecedores * (1 - custo_contrapartida)
    )
    mitigacao_total = impacto_fluxo_caixa * DURACAO_EFEITO
    custo_total = pagamentos_fornecedores * percentual_fornecedores * custo_contrapartida * DURACAO_EFEITO

    novo_pmp = pmp + aumento_prazo * percentual_fornecedores
    ciclo_ajustado = _ciclo(pmr, pme, novo_pmp)

    return {
        "aumentoPrazo": aumento_prazo,
        "percentualFornecedores": numero(estrategia.get("percentualFornecedores")),
        "contrapartidas": estrategia.get("contrapartidas"),
        "custoContrapartida": numero(estrategia.get("custoContrapartida")),
        "pagamentosFornecedores": pagamentos_fornecedores,
        "impactoFluxoCaixa": impacto_fluxo_caixa,
        "duracaoEfeito": DURACAO_EFEITO,
        "mitigacaoTotal": mitigacao_total,
        "efetividadePercentual": _efetividade(mitigacao_total, _gap(impacto_base)),
        "custoTotal": custo_total,
        "custoBeneficio": _razao(custo_total, mitigacao_total) if custo_total > 0 else 0.0,
        "impactoNovoPMP": novo_pmp,
        "impactoCicloFinanceiro": ciclo_ajustado,
        "diferencaCiclo": _ciclo(pmr, pme, pmp) - ciclo_ajustado,
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def calcular_efetividade_antecipacao_recebiveis(dados: dict, estrategia: dict, impacto_base: dict) -> dict:
    percentual_antecipacao = numero(estrategia.get("percentualAntecipacao")) / 100
    taxa_desconto = normalizar_percentual(estrategia.get("taxaDesconto"))
    prazo_antecipacao = numero(estrategia.get("prazoAntecipacao"))
    faturamento = numero(dados.get("faturamento"))
    perc_prazo = normalizar_percentual(dados.get("percPrazo"))
    pmr, pmp, pme = numero(dados.get("pmr")), numero(dados.get("pmp")), numero(dados.get("pme"))

    vendas_prazo = faturamento * perc_prazo
    valor_antecipado = vendas_prazo * percentual_antecipacao
    custo_antecipacao = valor_antecipado * taxa_desconto * (prazo_antecipacao / 30)
    impacto_fluxo_caixa = valor_antecipado - custo_antecipacao

    valor_total_antecipado = valor_antecipado * DURACAO_EFEITO
    custo_total_antecipacao = custo_antecipacao * DURACAO_EFEITO

    pmr_ajustado = pmr * (1 - percentual_antecipacao * perc_prazo)
    ciclo_ajustado = _ciclo(pmr_ajustado, pme, pmp)

    return {
        "percentualAntecipacao": numero(estrategia.get("percentualAntecipacao")),
        "taxaDesconto": taxa_desconto * 100,
        "prazoAntecipacao": prazo_antecipacao,
        "vendasPrazo": vendas_prazo,
        "valorAntecipado": valor_antecipado,
        "custoAntecipacao": custo_antecipacao,
        "impactoFluxoCaixa": impacto_fluxo_caixa,
        "valorTotalAntecipado": valor_total_antecipado,
        "custoTotalAntecipacao": custo_total_antecipacao,
        "mitigacaoTotal": impacto_fluxo_caixa * DURACAO_EFEITO,
        # a antecipação libera caixa todo mês; a efetividade usa o valor mensal
        "efetividadePercentual": _efetividade(impacto_fluxo_caixa, _gap(impacto_base)),
        "pmrAjustado": pmr_ajustado,
        "reducaoPMR": pmr - pmr_ajustado,
        "cicloFinanceiroAjustado": ciclo_ajustado,
        "reducaoCiclo": _ciclo(pmr, pme, pmp) - ciclo_ajustado,
        "custoBeneficio": _razao(custo_total_antecipacao, valor_total_antecipado),
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def calcular_efetividade_capital_giro(dados: dict, estrategia: dict, impacto_base: dict) -> dict:
    valor_captacao = numero(estrategia.get("valorCaptacao")) / 100
    taxa_juros = normalizar_percentual(estrategia.get("taxaJuros"))
    prazo_pagamento = numero(estrategia.get("prazoPagamento"))
    carencia = numero(estrategia.get("carencia"))
    faturamento = numero(dados.get("faturamento"))

    if prazo_pagamento <= carencia:
        return _erro("O prazo de pagamento deve ser maior que a carência.")

    gap = _gap(impacto_base)
    valor_financiamento = gap * valor_captacao
    custo_mensal_juros = valor_financiamento * taxa_juros

    # na carência paga só juros; depois, juros mais amortização
    custo_carencia = custo_mensal_juros * carencia
    meses_amortizacao = prazo_pagamento - carencia
    valor_parcela = valor_financiamento / meses_amortizacao
    custo_apos_carencia = (valor_parcela + custo_mensal_juros) * meses_amortizacao
    custo_total = custo_carencia + custo_apos_carencia

    return {
        "valorCaptacao": numero(estrategia.get("valorCaptacao")),
        "taxaJuros": taxa_juros * 100,
        "prazoPagamento": prazo_pagamento,
        "carencia": carencia,
        "valorFinanciamento": valor_financiamento,
        "custoMensalJuros": custo_mensal_juros,
        "valorParcela": valor_parcela,
        "custoCarencia": custo_carencia,
        "custoAposCarencia": custo_apos_carencia,
        "custoTotalFinanciamento": custo_total,
        "mitigacaoTotal": valor_financiamento,
        "efetividadePercentual": _efetividade(valor_financiamento, gap),
        "taxaEfetivaAnual": (1 + taxa_juros) ** 12 - 1,
        "impactoMargemPP": _razao(custo_mensal_juros, faturamento) * 100,
        "custoBeneficio": _razao(custo_total, valor_financiamento),
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def calcular_efetividade_mix_produtos(dados: dict, estrategia: dict, impacto_base: dict) -> dict:
    percentual_ajuste = numero(estrategia.get("percentualAjuste")) / 100
    foco_ajuste = estrategia.get("focoAjuste") or "ciclo"
    impacto_receita = numero(estrategia.get("impactoReceita")) / 100
    variacao_margem = numero(estrategia.get("impactoMargem")) / 100
    faturamento = numero(dados.get("faturamento"))
    margem = normalizar_percentual(dados.get("margem"))
    pmr, pmp, pme = numero(dados.get("pmr")), numero(dados.get("pmp")), numero(dados.get("pme"))

    valor_ajustado = faturamento * percentual_ajuste
    variacao_receita = valor_ajustado * impacto_receita
    impacto_fluxo_receita = variacao_receita * margem
    impacto_fluxo_margem = faturamento * variacao_margem
    impacto_fluxo_caixa = impacto_fluxo_receita + impacto_fluxo_margem

    reducao_ciclo = 0.0
    impacto_pmr = 0.0
    if foco_ajuste == "ciclo":
        # até 20% do PMR, limitado a 5 dias
        reducao_ciclo = min(pmr * 0.2, 5) * percentual_ajuste
        impacto_pmr = reducao_ciclo
    elif foco_ajuste == "vista":
        # metade do ajuste migra para vendas à vista
        impacto_pmr = pmr * percentual_ajuste * 0.5
        reducao_ciclo = impacto_pmr

    impacto_total = impacto_fluxo_caixa * DURACAO_EFEITO
    custo_implementacao = valor_ajustado * CUSTO_IMPLEMENTACAO_MIX

    return {
        "percentualAjuste": numero(estrategia.get("percentualAjuste")),
        "focoAjuste": foco_ajuste,
        "impactoReceita": numero(estrategia.get("impactoReceita")),
        "impactoMargem": numero(estrategia.get("impactoMargem")),
        "variacaoMargem": variacao_margem,
        "valorAjustado": valor_ajustado,
        "variacaoReceita": variacao_receita,
        "novaReceita": faturamento + variacao_receita,
        "margemAjustada": margem + variacao_margem,
        "impactoFluxoReceita": impacto_fluxo_receita,
        "impactoFluxoMargem": impacto_fluxo_margem,
        "impactoFluxoCaixa": impacto_fluxo_caixa,
        "efetividadePercentual": _efetividade(impacto_fluxo_caixa, _gap(impacto_base)),
        "reducaoCiclo": reducao_ciclo,
        "impactoPMR": impacto_pmr,
        "pmrAjustado": pmr - impacto_pmr,
        "cicloFinanceiroAjustado": _ciclo(pmr - impacto_pmr, pme, pmp),
        "duracaoEfeito": DURACAO_EFEITO,
        "impactoTotal": impacto_total,
        "mitigacaoTotal": impacto_total,
        "custoImplementacao": custo_implementacao,
        "custoBeneficio": _razao(custo_implementacao, impacto_total),
        "memoriaCritica": gerar_memoria_critica(dados),
    }


def calcular_efetividade_meios_pagamento(dados: dict, estrategia: dict, impacto_base: dict) -> dict:
    distribuicao_atual = estrategia.get("distribuicaoAtual") or {}
    distribuicao_nova = estrategia.get("distribuicaoNova") or {}
    taxa_incentivo = numero(estrategia.get("taxaIncentivo")) / 100
    faturamento = numero(dados.get("faturamento"))
    pmr, pmp, pme = numero(dados.get("pmr")), numero(dados.get("pmp")), numero(dados.get("pme"))

    perc_vista_atual = numero(distribuicao_atual.get("vista")) / 100
    perc_vista = numero(distribuicao_nova.get("vista")) / 100
    perc_30 = numero(distribuicao_nova.get("dias30")) / 100
    perc_60 = numero(distribuicao_nova.get("dias60")) / 100
    perc_90 = numero(distribuicao_nova.get("dias90")) / 100

    if abs(perc_vista + perc_30 + perc_60 + perc_90 - 1) > 0.01:
        return _erro("A soma dos percentuais da nova distribuição deve ser 100%.")

    pmr_novo = 30 * perc_30 + 60 * perc_60 + 90 * perc_90
    variacao_pmr = pmr_novo - pmr
    ciclo_atual = _ciclo(pmr, pme, pmp)
    ciclo_novo = _ciclo(pmr_novo, pme, pmp)

    valor_incentivo_mensal = faturamento * (perc_vista - perc_vista_atual) * taxa_incentivo
    impacto_pmr = faturamento / 30 * (-variacao_pmr)
    impacto_liquido = impacto_pmr - valor_incentivo_mensal
    impacto_total = impacto_liquido * DURACAO_EFEITO

    return {
        "distribuicaoAtual": distribuicao_atual,
        "distribuicaoNova": distribuicao_nova,
        "taxaIncentivo": numero(estrategia.get("taxaIncentivo")),
        "pmrAtual": pmr,
        "pmrNovo": pmr_novo,
        "variaPMR": variacao_pmr,
        "cicloFinanceiroAtual": ciclo_atual,
        "cicloFinanceiroNovo": ciclo_novo,
        "variacaoCiclo": ciclo_novo - ciclo_atual,
        "valorIncentivoMensal": valor_incentivo_mensal,
        "impactoFluxoPMR": impacto_pmr,
        "impactoLiquido": impacto_liquido,
        "efetividadePercentual": _efetividade(impacto_liquido, _gap(impacto_base)),
        "duracaoEfeito": DURACAO_EFEITO,
        "impactoTotal": impacto_total,
        "mitigacaoTotal": impacto_total,
        "custoTotalIncentivo": valor_incentivo_mensal * DURACAO_EFEITO,
        "custoBeneficio": (
            valor_incentivo_mensal / abs(impacto_pmr) if variacao_pmr < 0 else float("inf")
        ),
        "memoriaCritica": gerar_memoria_critica(dados),
    }


ESTRATEGIAS = {
    "ajustePrecos": calcular_efetividade_ajuste_precos,
    "renegociacaoPrazos": calcular_efetividade_renegociacao_prazos,
    "antecipacaoRecebiveis": calcular_efetividade_antecipacao_recebiveis,
    "capitalGiro": calcular_efetividade_capital_giro,
    "mixProdutos": calcular_efetividade_mix_produtos,
    "meiosPagamento": calcular_efetividade_meios_pagamento,
}


def _configuracoes(estrategias) -> dict:
    if isinstance(estrategias, BaseModel):
        return estrategias.model_dump()
    return dict(estrategias or {})


def calcular_efetividade_mitigacao(
    dados,
    estrategias,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """
    Evaluates every active strategy against the year's impact, their combined
    effect and the best combination, plus the before/after comparison used by
    the dashboard charts.
    """
    dados = garantir_dados_planos(dados, "calcular_efetividade_mitigacao")
    configuracoes = _configuracoes(estrategias)
    impacto_base = calcular_impacto_capital_giro(dados, ano, parametros_setoriais, provider)

    resultados = {}
    for nome, avaliador in ESTRATEGIAS.items():
        config = configuracoes.get(nome) or {}
        resultados[nome] = avaliador(dados, config, impacto_base) if config.get("ativar") else None

    combinada = calcular_efetividade_combinada(dados, resultados, impacto_base)
    combinacao_otima = identificar_combinacao_otima(dados, resultados, impacto_base)

    avaliadas = {nome: r for nome, r in resultados.items() if r is not None}
    ordenadas = sorted(
        (
            {"estrategia": nome, "nome": traduzir_nome_estrategia(nome),
             "efetividadePercentual": r.get("efetividadePercentual", 0)}
            for nome, r in avaliadas.items()
        ),
        key=lambda e: e["efetividadePercentual"],
        reverse=True,
    )

    diferenca = numero(impacto_base.get("diferencaCapitalGiro"))
    necessidade = numero(impacto_base.get("necessidadeAdicionalCapitalGiro"))
    percentual_impacto = numero(impacto_base.get("percentualImpacto"))
    capital_split = numero((impacto_base.get("resultadoSplitPayment") or {}).get("capitalGiroDisponivel"))
    fator_restante = 1 - combinada["efetividadePercentual"] / 100

    regimes_comparacao = {
        "semMitigacao": {
            "capitalGiro": capital_split,
            "diferencaCapitalGiro": diferenca,
            "percentualImpacto": percentual_impacto,
            "necessidadeAdicional": necessidade,
        },
        "comMitigacao": {
            "capitalGiro": capital_split + combinada["mitigacaoTotal"],
            "diferencaCapitalGiro": diferenca + combinada["mitigacaoTotal"],
            "percentualImpacto": percentual_impacto * fator_restante,
            "necessidadeAdicional": necessidade * fator_restante,
        },
        "efetividadeEstrategias": {
            nome: {
                "efetividadePercentual": r.get("efetividadePercentual", 0),
                "mitigacaoValor": r.get("mitigacaoTotal", 0),
                "custo": obter_custo_estrategia(nome, r),
                "custoBeneficio": r.get("custoBeneficio", 0),
            }
            for nome, r in avaliadas.items()
        },
    }

    dados_graficos = {
        "efetividade": {
            "estrategias": [
                {"nome": traduzir_nome_estrategia(nome), "efetividade": r.get("efetividadePercentual", 0)}
                for nome, r in avaliadas.items()
            ],
            "combinada": combinada["efetividadePercentual"],
        },
        "custoBeneficio": {
            "estrategias": [
                {
                    "nome": traduzir_nome_estrategia(nome),
                    "custo": obter_custo_estrategia(nome, r),
                    "beneficio": r.get("mitigacaoTotal", 0),
                    "relacao": r.get("custoBeneficio", 0),
                }
                for nome, r in avaliadas.items()
            ],
        },
        "comparacaoImpacto": {
            "labels": ["Sem Mitigação", "Com Mitigação"],
            "diferencaCapitalGiro": [abs(diferenca), abs(diferenca * fator_restante)],
            "necessidadeAdicional": [necessidade, necessidade * fator_restante],
        },
    }

    return {
        "impactoBase": impacto_base,
        "resultadosEstrategias": resultados,
        "efetividadeCombinada": combinada,
        "estrategiasOrdenadas": ordenadas,
        "estrategiaMaisEfetiva": ordenadas[0] if ordenadas else None,
        "combinacaoOtima": combinacao_otima,
        "regimesComparacao": regimes_comparacao,
        "dadosGraficos": dados_graficos,
        "memoriaCritica": gerar_memoria_critica(dados),
    }
