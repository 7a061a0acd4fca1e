from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pdv.db.session import get_db
from pdv.models.product import Produto as ProdutoModel
from pdv.schemas.carrinho import CarrinhoItemAdd, CarrinhoQuantidade, CarrinhoRead, CheckoutRequest
from pdv.schemas.condicional import CondicionalRead
from pdv.schemas.pedido import ItemVenda, PedidoRead
from pdv.services import checkout
from pdv.services.carrinho import CarrinhoStore, get_cart_store
from pdv.services.condicionais import status_efetivo
from pdv.utils.pubsub import notify_invalidation

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.post("", response_model=CarrinhoRead, status_code=201)
@router.post("/", response_model=CarrinhoRead, status_code=201)
def create_cart(store: CarrinhoStore = Depends(get_cart_store)):
    return store.criar().to_dict()


@router.get("/{cart_id}", response_model=CarrinhoRead)
def get_cart(cart_id: str, store: CarrinhoStore = Depends(get_cart_store)):
    return store.obter(cart_id).to_dict()


@router.post("/{cart_id}/items", response_model=CarrinhoRead)
def add_item(cart_id: str, payload: CarrinhoItemAdd, db: Session = Depends(get_db), store: CarrinhoStore = Depends(get_cart_store)):
    produto = db.query(ProdutoModel).filter(ProdutoModel.id == payload.product_id).first()
    if not produto:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    return store.adicionar(cart_id, produto, quantity=payload.quantity, size=payload.size, color=payload.color).to_dict()


@router.patch("/{cart_id}/items/{item_id}", response_model=CarrinhoRead)
def update_item(cart_id: str, item_id: str, payload: CarrinhoQuantidade, store: CarrinhoStore = Depends(get_cart_store)):
    return store.atualizar_quantidade(cart_id, item_id, payload.quantity).to_dict()


@router.delete("/{cart_id}/items/{item_id}", response_model=CarrinhoRead)
def remove_item(cart_id: str, item_id: str, store: CarrinhoStore = Depends(get_cart_store)):
    return store.remover(cart_id, item_id).to_dict()


@router.delete("/{cart_id}/items", response_model=CarrinhoRead)
def clear_cart(cart_id: str, store: CarrinhoStore = Depends(get_cart_store)):
    return store.limpar(cart_id).to_dict()


@router.delete("/{cart_id}")
def discard_cart(cart_id: str, store: CarrinhoStore = Depends(get_cart_store)):
    store.descartar(cart_id)
    return {"detail": "Carrinho descartado"}


@router.post("/{cart_id}/checkout")
async def checkout_cart(cart_id: str, payload: CheckoutRequest, db: Session = Depends(get_db), store: CarrinhoStore = Depends(get_cart_store)):
    """Finish the cart as a sale or as a conditional; the cart is dropped on success."""
    cart = store.obter(cart_id)
    itens = [
        ItemVenda(product_id=it.product_id, quantity=it.quantity, size=it.size, color=it.color)
        for it in cart.items
    ]
    if payload.mode == 'conditional':
        cond = checkout.abrir_condicional(db, itens, customer_id=payload.customer_id, due_date=payload.due_date)
        store.descartar(cart_id)
        notify_invalidation("conditionals", "products")
        out = CondicionalRead.model_validate(cond)
        out.effective_status = status_efetivo(cond)
        return {"mode": "conditional", "conditional": out.model_dump(mode="json")}

    pedido = checkout.finalizar_venda(
        db,
        itens,
        customer_id=payload.customer_id,
        payment_method=payload.payment_method,
        payment_methods=payload.payment_methods,
    )
    store.descartar(cart_id)
    notify_invalidation("orders", "products")
    return {"mode": "sale", "order": PedidoRead.model_validate(pedido).model_dump(mode="json")}
