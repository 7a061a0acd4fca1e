from decimal import Decimal, ROUND_HALF_UP

CENTAVOS = Decimal('0.01')


def dinheiro(valor) -> Decimal:
    """Normalize a float/str/Decimal amount to a 2-place Decimal."""
    if valor is None:
        return Decimal('0.00')
    if not isinstance(valor, Decimal):
        valor = Decimal(str(valor))
    return valor.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def valor_linha(unit_price, quantity) -> Decimal:
    return dinheiro(dinheiro(unit_price) * int(quantity))


def soma_itens(itens) -> Decimal:
    """Sum of unit_price * quantity over objects exposing those attributes."""
    total = Decimal('0.00')
    for it in itens:
        total += valor_linha(it.unit_price, it.quantity)
    return dinheiro(total)
