import enum

# Statuts libres des devis (pas d'enum en base : le champ reste texte)
ORDER_STATUS_DEFAULT = "em_analise"
ORDER_STATUS_CONVERTED = "convertido"

REALIZED_STATUS_DEFAULT = "em_execucao"


class StockMovementType(str, enum.Enum):
    entrada = "entrada"
    saida = "saida"


class StockOrigin(str, enum.Enum):
    manual = "manual"
    servico = "servico"
    orcamento = "orcamento"
    ajuste_sistema = "ajuste_sistema"


class FinanceType(str, enum.Enum):
    income = "in"
    expense = "out"


class FinanceStatus(str, enum.Enum):
    paid = "Pago"
    pending = "Pendente"
    scheduled = "Agendado"


class PaymentChannel(str, enum.Enum):
    pix = "PIX"
    card = "Cartao"
    cash = "Dinheiro"
    boleto = "Boleto"
    transfer = "Transferencia"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]
