"""Session-scoped carts for the PDV screen.

Carts live in process memory, keyed by an opaque id handed to the client.
Nothing here touches stock: the quantities are only checked against the
product's stock at the time of each operation, the real decrement happens
at checkout.
"""
import copy
import threading
import uuid
from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Dict, List, Optional

from pdv.core.errors import ConflictError, NotFoundError, ValidationError
from pdv.utils.valores import dinheiro, valor_linha


@dataclass
class ItemCarrinho:
    id: str
    product_id: int
    name: str
    sku: str
    sale_price: Decimal
    quantity: int
    stock: int
    size: Optional[str] = None
    color: Optional[str] = None

    @property
    def total(self) -> Decimal:
        return valor_linha(self.sale_price, self.quantity)


@dataclass
class Carrinho:
    id: str
    items: List[ItemCarrinho] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(it.quantity for it in self.items)

    @property
    def subtotal(self) -> Decimal:
        return dinheiro(sum((it.total for it in self.items), Decimal('0')))

    def quantidade_produto(self, product_id: int) -> int:
        return sum(it.quantity for it in self.items if it.product_id == product_id)

    def item(self, item_id: str) -> ItemCarrinho:
        for it in self.items:
            if it.id == item_id:
                return it
        raise NotFoundError("Item não encontrado no carrinho")

    def to_dict(self) -> dict:
        itens = []
        for it in self.items:
            d = asdict(it)
            d['sale_price'] = float(it.sale_price)
            itens.append(d)
        return {
            'id': self.id,
            'items': itens,
            'item_count': self.item_count,
            'subtotal': float(self.subtotal),
        }


class CarrinhoStore:
    """Thread-safe registry of carts. Every public method returns a snapshot."""

    def __init__(self):
        self._carrinhos: Dict[str, Carrinho] = {}
        self._lock = threading.Lock()

    def _get(self, cart_id: str) -> Carrinho:
        try:
            return self._carrinhos[cart_id]
        except KeyError:
            raise NotFoundError("Carrinho não encontrado") from None

    def criar(self) -> Carrinho:
        with self._lock:
            cart = Carrinho(id=uuid.uuid4().hex)
            self._carrinhos[cart.id] = cart
            return copy.deepcopy(cart)

    def obter(self, cart_id: str) -> Carrinho:
        with self._lock:
            return copy.deepcopy(self._get(cart_id))

    def adicionar(self, cart_id: str, produto, quantity: int = 1, size: Optional[str] = None, color: Optional[str] = None) -> Carrinho:
        """Add `quantity` units of a product (an ORM Produto or alike).

        The same product/size/color increments the existing line. The total
        per product can never exceed its current stock.
        """
        if quantity < 1:
            raise ValidationError("Quantidade deve ser maior que zero")
        if getattr(produto, 'status', 'active') != 'active':
            raise ValidationError(f"Produto {produto.name} está inativo")
        stock = int(produto.stock or 0)
        with self._lock:
            cart = self._get(cart_id)
            if cart.quantidade_produto(produto.id) + quantity > stock:
                raise ConflictError(
                    f"Estoque insuficiente: não é possível adicionar mais {produto.name}. Estoque: {stock}"
                )
            existente = next(
                (it for it in cart.items if it.product_id == produto.id and it.size == size and it.color == color),
                None,
            )
            if existente is not None:
                existente.quantity += quantity
            else:
                cart.items.append(ItemCarrinho(
                    id=f"{produto.id}-{uuid.uuid4().hex[:8]}",
                    product_id=produto.id,
                    name=produto.name,
                    sku=produto.sku,
                    sale_price=dinheiro(produto.sale_price),
                    quantity=quantity,
                    stock=stock,
                    size=size,
                    color=color,
                ))
            # refresh the stock snapshot on every line of this product
            for it in cart.items:
                if it.product_id == produto.id:
                    it.stock = stock
            return copy.deepcopy(cart)

    def atualizar_quantidade(self, cart_id: str, item_id: str, quantity: int) -> Carrinho:
        """Set a line's quantity; zero or less removes it, above stock clamps."""
        with self._lock:
            cart = self._get(cart_id)
            item = cart.item(item_id)
            if quantity <= 0:
                cart.items.remove(item)
            else:
                outros = cart.quantidade_produto(item.product_id) - item.quantity
                item.quantity = max(0, min(quantity, item.stock - outros))
                if item.quantity == 0:
                    cart.items.remove(item)
            return copy.deepcopy(cart)

    def remover(self, cart_id: str, item_id: str) -> Carrinho:
        with self._lock:
            cart = self._get(cart_id)
            cart.items.remove(cart.item(item_id))
            return copy.deepcopy(cart)

    def limpar(self, cart_id: str) -> Carrinho:
        with self._lock:
            cart = self._get(cart_id)
            cart.items.clear()
            return copy.deepcopy(cart)

    def descartar(self, cart_id: str) -> None:
        with self._lock:
            self._carrinhos.pop(cart_id, None)

    def __len__(self):
        with self._lock:
            return len(self._carrinhos)


carrinhos = CarrinhoStore()


def get_cart_store() -> CarrinhoStore:
    """FastAPI dependency returning the process-wide store."""
    return carrinhos
