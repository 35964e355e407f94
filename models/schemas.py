from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Any, Dict, Union


def _fracao(valor):
    # aceita 0-100 ou 0-1
    if isinstance(valor, (int, float)) and not isinstance(valor, bool) and valor > 1:
        return valor / 100
    return valor


class DadosSimulacaoPlana(BaseModel):
    """Registro plano consumido pelo motor de cálculo."""
    model_config = ConfigDict(extra="forbid")

    faturamento: float                     # faturamento mensal
    aliquota: float = 0.265                # alíquota efetiva total
    pmr: float = 30
    pmp: float = 30
    pme: float = 30
    percVista: float = 0.3
    percPrazo: float = 0.7
    margem: float = 0.15
    creditos: float = 0
    debitos: Optional[float] = None
    splitPayment: bool = True

    aliquotaCBS: Optional[float] = None
    aliquotaIBS: Optional[float] = None
    categoriaIVA: Optional[str] = None     # standard | reduced | exempt
    reducaoEspecial: Optional[float] = None

    nomeEmpresa: Optional[str] = None
    setor: Optional[str] = None
    tipoEmpresa: Optional[str] = None      # comercio | industria | servicos
    regime: Optional[str] = None           # simples | presumido | real
    tipoOperacao: Optional[str] = None
    regimePisCofins: Optional[str] = None  # cumulativo | nao-cumulativo
    serviceCompany: Optional[bool] = None
    cumulativeRegime: Optional[bool] = None

    creditosPIS: float = 0
    creditosCOFINS: float = 0
    creditosICMS: float = 0
    creditosIPI: float = 0
    creditosCBS: float = 0
    creditosIBS: float = 0
    debitoPIS: float = 0
    debitoCOFINS: float = 0
    debitoICMS: float = 0
    debitoIPI: float = 0
    debitoISS: float = 0
    dadosSpedImportados: Optional[bool] = None

    taxaCapitalGiro: Optional[float] = None
    taxaAntecipacao: Optional[float] = None
    spreadBancario: Optional[float] = None

    cenario: str = "moderado"              # conservador | moderado | otimista | personalizado
    taxaCrescimento: Optional[float] = None
    dataInicial: str = "2026-01-01"
    dataFinal: str = "2033-12-31"

    cronogramaProprio: bool = False
    cronogramaImplementacao: Optional[Dict[int, float]] = None

    @field_validator("aliquota", "margem", "percVista", "percPrazo")
    @classmethod
    def normalizar_percentual(cls, valor: float) -> float:
        return _fracao(valor)

    @field_validator("faturamento")
    @classmethod
    def faturamento_nao_negativo(cls, valor: float) -> float:
        if valor < 0:
            raise ValueError("faturamento não pode ser negativo")
        return valor


# ── Estrutura aninhada (formulário) ──────────────────────────────────────────

class EmpresaInput(BaseModel):
    faturamento: Union[float, str] = 0     # aceita "R$ 1.234,56"
    margem: float = 0
    nome: Optional[str] = None
    setor: str = ""
    tipoEmpresa: str = ""
    regime: str = ""


class CicloFinanceiroInput(BaseModel):
    pmr: float = 30
    pmp: float = 30
    pme: float = 30
    percVista: float = 0.3
    percPrazo: float = 0.7


class ComposicaoTributaria(BaseModel):
    """Débitos e créditos apurados no SPED."""
    debitos: Dict[str, float] = {}
    creditos: Dict[str, float] = {}
    aliquotasEfetivas: Optional[Dict[str, float]] = None


class ParametrosFiscaisInput(BaseModel):
    aliquota: float = 0.265
    tipoOperacao: str = ""
    regimePisCofins: str = ""
    creditos: Dict[str, Union[float, str]] = {}
    debitos: Dict[str, Union[float, str]] = {}
    composicaoTributaria: Optional[ComposicaoTributaria] = None


class ParametrosSimulacaoInput(BaseModel):
    cenario: str = "moderado"
    taxaCrescimento: float = 0.05
    dataInicial: str = "2026-01-01"
    dataFinal: str = "2033-12-31"
    splitPayment: bool = True


class ParametrosFinanceirosInput(BaseModel):
    taxaCapitalGiro: float = 0.021
    taxaAntecipacao: float = 0.018
    spreadBancario: float = 0.005


class IvaConfigInput(BaseModel):
    cbs: Union[float, str] = 0.088         # o formulário pode enviar "8,8"
    ibs: Union[float, str] = 0.177
    categoriaIva: str = "standard"
    reducaoEspecial: float = 0


class DadosSimulacaoAninhada(BaseModel):
    empresa: EmpresaInput
    cicloFinanceiro: CicloFinanceiroInput = Field(default_factory=CicloFinanceiroInput)
    parametrosFiscais: ParametrosFiscaisInput = Field(default_factory=ParametrosFiscaisInput)
    parametrosSimulacao: ParametrosSimulacaoInput = Field(default_factory=ParametrosSimulacaoInput)
    parametrosFinanceiros: ParametrosFinanceirosInput = Field(default_factory=ParametrosFinanceirosInput)
    ivaConfig: IvaConfigInput = Field(default_factory=IvaConfigInput)
    cronogramaImplementacao: Optional[Dict[int, float]] = None
    dadosSpedImportados: Optional[bool] = None


# ── Estratégias de mitigação ──────────────────────────────────────────────────

class AjustePrecosConfig(BaseModel):
    ativar: bool = False
    percentualAumento: float = 5           # %
    elasticidade: float = -1.2
    periodoAjuste: float = 3               # meses


class RenegociacaoPrazosConfig(BaseModel):
    ativar: bool = False
    aumentoPrazo: float = 15               # dias
    percentualFornecedores: float = 60     # %
    contrapartidas: str = "nenhuma"
    custoContrapartida: float = 0          # %


class AntecipacaoRecebiveisConfig(BaseModel):
    ativar: bool = False
    percentualAntecipacao: float = 50      # %
    taxaDesconto: float = 1.8              # % a.m. (ou fração)
    prazoAntecipacao: float = 25           # dias


class CapitalGiroConfig(BaseModel):
    ativar: bool = False
    valorCaptacao: float = 100             # % da necessidade
    taxaJuros: float = 2.1                 # % a.m. (ou fração)
    prazoPagamento: float = 12             # meses
    carencia: float = 3                    # meses


class MixProdutosConfig(BaseModel):
    ativar: bool = False
    percentualAjuste: float = 30           # %
    focoAjuste: str = "ciclo"              # ciclo | margem | vista
    impactoReceita: float = -5             # %
    impactoMargem: float = 3.5             # p.p.


class DistribuicaoAtual(BaseModel):
    vista: float = 30
    prazo: float = 70


class DistribuicaoNova(BaseModel):
    vista: float = 40
    dias30: float = 30
    dias60: float = 20
    dias90: float = 10


class MeiosPagamentoConfig(BaseModel):
    ativar: bool = False
    distribuicaoAtual: DistribuicaoAtual = Field(default_factory=DistribuicaoAtual)
    distribuicaoNova: DistribuicaoNova = Field(default_factory=DistribuicaoNova)
    taxaIncentivo: float = 3               # %


class EstrategiasConfig(BaseModel):
    ajustePrecos: AjustePrecosConfig = Field(default_factory=AjustePrecosConfig)
    renegociacaoPrazos: RenegociacaoPrazosConfig = Field(default_factory=RenegociacaoPrazosConfig)
    antecipacaoRecebiveis: AntecipacaoRecebiveisConfig = Field(default_factory=AntecipacaoRecebiveisConfig)
    capitalGiro: CapitalGiroConfig = Field(default_factory=CapitalGiroConfig)
    mixProdutos: MixProdutosConfig = Field(default_factory=MixProdutosConfig)
    meiosPagamento: MeiosPagamentoConfig = Field(default_factory=MeiosPagamentoConfig)


class ParametrosSetoriais(BaseModel):
    """Ajustes de um setor: cronograma próprio e alíquotas/categoria de IVA."""
    cronogramaProprio: bool = False
    cronogramas: Optional[Dict[str, Dict[int, float]]] = None  # splitPayment | cbs | ibs
    aliquotaCBS: Optional[float] = None
    aliquotaIBS: Optional[float] = None
    categoriaIva: Optional[str] = None
    reducaoEspecial: Optional[float] = None


# ── Requisições e respostas ───────────────────────────────────────────────────

# o motor recusa dados aninhados com FormatError; os dois formatos são aceitos
# aqui para que a API devolva essa mensagem em vez de um erro de validação
DadosEntrada = Union[DadosSimulacaoPlana, DadosSimulacaoAninhada]


class ImpactoRequest(BaseModel):
    dados: DadosEntrada
    ano: int = 2026
    parametrosSetoriais: Optional[ParametrosSetoriais] = None


class ProjecaoRequest(BaseModel):
    dados: DadosEntrada
    anoInicial: int = 2026
    anoFinal: int = 2033
    cenario: str = "moderado"
    taxaPersonalizada: Optional[float] = None
    parametrosSetoriais: Optional[ParametrosSetoriais] = None


class MitigacaoRequest(BaseModel):
    dados: DadosEntrada
    estrategias: EstrategiasConfig = Field(default_factory=EstrategiasConfig)
    ano: int = 2026
    parametrosSetoriais: Optional[ParametrosSetoriais] = None


class ConversaoRequest(BaseModel):
    dados: Dict[str, Any]
    formato: str                           # plano | aninhado


class CalculoResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
