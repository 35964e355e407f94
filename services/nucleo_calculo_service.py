"""
Funções de apoio compartilhadas pelos cálculos do simulador:
tempo médio de capital de giro, fatores de ajuste, opções de financiamento,
impacto no resultado, elasticidade e memória crítica.
"""

import logging
import math
from typing import Optional

from services.config import TAXA_CAPITAL_GIRO_PADRAO

logger = logging.getLogger(__name__)

FATOR_SAZONALIDADE = 1.3

TAXAS_CRESCIMENTO = {
    "conservador": 0.02,
    "moderado": 0.05,
    "otimista": 0.08,
}

CENARIOS_ELASTICIDADE = [
    {"nome": "Recessão",    "taxa": -0.02},
    {"nome": "Estagnação",  "taxa": 0.00},
    {"nome": "Conservador", "taxa": 0.02},
    {"nome": "Moderado",    "taxa": 0.05},
    {"nome": "Otimista",    "taxa": 0.08},
    {"nome": "Acelerado",   "taxa": 0.12},
]

NOMES_ESTRATEGIAS = {
    "ajustePrecos":          "Ajuste de Preços",
    "renegociacaoPrazos":    "Renegociação de Prazos",
    "antecipacaoRecebiveis": "Antecipação de Recebíveis",
    "capitalGiro":           "Capital de Giro",
    "mixProdutos":           "Mix de Produtos",
    "meiosPagamento":        "Meios de Pagamento",
}

# campo de custo devolvido por cada estratégia
CAMPOS_CUSTO_ESTRATEGIA = {
    "ajustePrecos":          "custoEstrategia",
    "renegociacaoPrazos":    "custoTotal",
    "antecipacaoRecebiveis": "custoTotalAntecipacao",
    "capitalGiro":           "custoTotalFinanciamento",
    "mixProdutos":           "custoImplementacao",
    "meiosPagamento":        "custoTotalIncentivo",
}


def numero(valor, padrao: float = 0.0) -> float:
    """Returns valor as float, or padrao when it is not a usable number."""
    if isinstance(valor, bool) or not isinstance(valor, (int, float)):
        return padrao
    if math.isnan(valor):
        return padrao
    return float(valor)


def normalizar_percentual(valor, padrao: float = 0.0) -> float:
    """Accepts 0-100 or 0-1 and returns a fraction (values > 1 are divided by 100)."""
    valor = numero(valor, padrao)
    return valor / 100 if valor > 1 else valor


def calcular_tempo_medio_capital_giro(pmr, prazo_recolhimento, perc_vista, perc_prazo) -> float:
    """
    Weighted days the company holds the tax before remitting it.
    Cash sales keep it for the whole remittance term; term sales only
    for what is left after the receivable is collected.
    """
    pmr = numero(pmr)
    prazo_recolhimento = numero(prazo_recolhimento)
    perc_vista = numero(perc_vista)
    perc_prazo = numero(perc_prazo)

    tempo_vista = prazo_recolhimento
    tempo_prazo = max(0.0, prazo_recolhimento - pmr)
    return perc_vista * tempo_vista + perc_prazo * tempo_prazo


def calcular_fator_sazonalidade(dados: Optional[dict] = None) -> float:
    return FATOR_SAZONALIDADE


def obter_taxa_crescimento(cenario: str, taxa_personalizada=None) -> float:
    if cenario == "personalizado":
        if isinstance(taxa_personalizada, (int, float)) and not isinstance(taxa_personalizada, bool) \
                and not math.isnan(taxa_personalizada):
            return normalizar_percentual(taxa_personalizada)
        logger.warning("Taxa de crescimento personalizada inválida: %r. Usando 5%%.", taxa_personalizada)
        return TAXAS_CRESCIMENTO["moderado"]
    return TAXAS_CRESCIMENTO.get(cenario, TAXAS_CRESCIMENTO["moderado"])


def calcular_fator_crescimento(dados: dict, ano: int) -> float:
    """Compound growth factor from 2026 up to ano, by the scenario in dados."""
    dados = dados or {}
    ano = int(numero(ano, 2026))
    cenario = dados.get("cenario") or "moderado"
    taxa = obter_taxa_crescimento(cenario, dados.get("taxaCrescimento"))
    return (1 + taxa) ** (ano - 2026)


def calcular_opcoes_financiamento(dados: dict, valor_necessidade) -> dict:
    dados = dados or {}
    valor_necessidade = numero(valor_necessidade)
    taxa_capital_giro = numero(dados.get("taxaCapitalGiro"), TAXA_CAPITAL_GIRO_PADRAO) or TAXA_CAPITAL_GIRO_PADRAO
    taxa_antecipacao = numero(dados.get("taxaAntecipacao"), 0.018) or 0.018
    spread_bancario = numero(dados.get("spreadBancario"), 0.005)
    faturamento = numero(dados.get("faturamento"))
    perc_prazo = numero(dados.get("percPrazo"), 0.7)

    opcoes = [
        {
            "tipo": "Capital de Giro",
            "taxaMensal": taxa_capital_giro,
            "prazo": 12, "carencia": 3,
            "valorMaximo": valor_necessidade * 1.5,
        },
        {
            "tipo": "Antecipação de Recebíveis",
            "taxaMensal": taxa_antecipacao,
            "prazo": 6, "carencia": 0,
            "valorMaximo": faturamento * perc_prazo * 3,
        },
        {
            "tipo": "Empréstimo Bancário",
            "taxaMensal": taxa_capital_giro + spread_bancario,
            "prazo": 24, "carencia": 6,
            "valorMaximo": valor_necessidade * 2,
        },
    ]

    for opcao in opcoes:
        opcao["valorAprovado"] = min(valor_necessidade, opcao["valorMaximo"])
        opcao["custoMensal"] = opcao["valorAprovado"] * opcao["taxaMensal"]
        opcao["custoTotal"] = opcao["custoMensal"] * (opcao["prazo"] - opcao["carencia"])
        opcao["custoAnual"] = opcao["custoMensal"] * 12
        opcao["taxaEfetivaAnual"] = (1 + opcao["taxaMensal"]) ** 12 - 1
        opcao["valorParcela"] = opcao["valorAprovado"] / opcao["prazo"] + opcao["custoMensal"]

    opcoes.sort(key=lambda o: o["custoTotal"])
    return {"opcoes": opcoes, "opcaoRecomendada": opcoes[0]}


def calcular_impacto_resultado(dados: dict, custo_anual) -> dict:
    """Effect of an annual financial cost on yearly operating profit."""
    dados = dados or {}
    custo_anual = numero(custo_anual)
    faturamento = numero(dados.get("faturamento"))
    margem = normalizar_percentual(dados.get("margem"))

    faturamento_anual = faturamento * 12
    lucro_operacional_anual = faturamento_anual * margem
    resultado_ajustado = lucro_operacional_anual - custo_anual

    return {
        "faturamentoAnual": faturamento_anual,
        "lucroOperacionalAnual": lucro_operacional_anual,
        "custoAnual": custo_anual,
        "percentualDaReceita": custo_anual / faturamento_anual * 100 if faturamento_anual > 0 else 0.0,
        "percentualDoLucro": custo_anual / lucro_operacional_anual * 100 if lucro_operacional_anual > 0 else 0.0,
        "resultadoAjustado": resultado_ajustado,
        "margemAjustada": resultado_ajustado / faturamento_anual if faturamento_anual > 0 else 0.0,
    }


def calcular_analise_elasticidade(dados: dict, ano_inicial: int = 2026, ano_final: int = 2033) -> dict:
    """
    Rough accumulated impact under six growth scenarios and the elasticity
    of each one relative to the moderate scenario.
    """
    dados = dados or {}
    ano_inicial = int(numero(ano_inicial, 2026))
    ano_final = int(numero(ano_final, 2033))
    faturamento = numero(dados.get("faturamento"))
    aliquota = normalizar_percentual(dados.get("aliquota"), 0.265)
    taxa_capital_giro = normalizar_percentual(dados.get("taxaCapitalGiro"), TAXA_CAPITAL_GIRO_PADRAO)

    anos = ano_final - ano_inicial
    resultados = {}
    for cenario in CENARIOS_ELASTICIDADE:
        impacto_estimado = faturamento * aliquota * (1 + cenario["taxa"]) ** anos * (anos + 1) * 0.5
        resultados[cenario["nome"]] = {
            "taxa": cenario["taxa"],
            "impactoAcumulado": impacto_estimado,
            "custoFinanceiroTotal": impacto_estimado * taxa_capital_giro * 12,
            "impactoMedioMargem": impacto_estimado / faturamento * taxa_capital_giro if faturamento > 0 else 0.0,
        }

    referencia = resultados["Moderado"]
    elasticidades = {}
    for cenario in CENARIOS_ELASTICIDADE:
        if cenario["nome"] == "Moderado":
            continue
        variacao_impacto = (
            (resultados[cenario["nome"]]["impactoAcumulado"] - referencia["impactoAcumulado"])
            / referencia["impactoAcumulado"]
            if referencia["impactoAcumulado"] > 0 else 0.0
        )
        variacao_taxa = (cenario["taxa"] - referencia["taxa"]) / referencia["taxa"]
        elasticidades[cenario["nome"]] = variacao_impacto / variacao_taxa if variacao_taxa != 0 else 0.0

    return {
        "cenarios": [dict(cenario) for cenario in CENARIOS_ELASTICIDADE],
        "resultados": resultados,
        "elasticidades": elasticidades,
    }


def gerar_memoria_critica(dados: dict, valores: Optional[dict] = None) -> dict:
    # import local: dados_service depende deste módulo
    from services.dados_service import formatar_moeda, formatar_percentual

    dados = dados or {}
    faturamento = numero(dados.get("faturamento"))
    aliquota = normalizar_percentual(dados.get("aliquota"))
    creditos = numero(dados.get("creditos"))
    perc_vista = normalizar_percentual(dados.get("percVista"))
    perc_prazo = normalizar_percentual(dados.get("percPrazo"))

    valor_imposto_total = faturamento * aliquota
    valor_imposto_liquido = max(0.0, valor_imposto_total - creditos)

    memoria = {
        "tituloRegime": "Regime Tributário",
        "descricaoRegime": "Simulação de Split Payment e Reforma Tributária",
        "formula": "Impacto = Valor do Imposto × Percentual de Implementação",
        "passoAPasso": [
            f"1. Cálculo do Imposto Total: {formatar_moeda(faturamento)} × "
            f"{formatar_percentual(aliquota * 100)} = {formatar_moeda(valor_imposto_total)}",
            f"2. Cálculo do Imposto Líquido: {formatar_moeda(valor_imposto_total)} - "
            f"{formatar_moeda(creditos)} = {formatar_moeda(valor_imposto_liquido)}",
        ],
        "observacoes": [
            f"Distribuição de vendas: {formatar_percentual(perc_vista * 100, 1)} à vista "
            f"e {formatar_percentual(perc_prazo * 100, 1)} a prazo.",
        ],
    }

    if valores and "diferencaCapitalGiro" in valores:
        memoria["passoAPasso"].append(
            f"3. Diferença no Capital de Giro: {formatar_moeda(valores['diferencaCapitalGiro'])}"
        )
    return memoria


def traduzir_nome_estrategia(nome: str) -> str:
    return NOMES_ESTRATEGIAS.get(nome, nome)


def obter_custo_estrategia(nome: str, resultado: Optional[dict]) -> float:
    if not resultado:
        return 0.0
    campo = CAMPOS_CUSTO_ESTRATEGIA.get(nome)
    return numero(resultado.get(campo)) if campo else 0.0
