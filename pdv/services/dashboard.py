"""Read-only dashboard aggregations.

Rows are filtered by `created_at` in the period through SQL and grouped in
Python, so bucketing follows the reporting timezone on every database
backend. Every bucket of the period is present, empty ones with zero.
"""
import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from pdv.core.timezone_utils import local_today
from pdv.models.condicional import Condicional
from pdv.models.pedido import Pedido
from pdv.models.product import Produto
from pdv.services import estoque
from pdv.services.condicionais import STATUS_ABERTOS, status_efetivo
from pdv.services.periodos import Periodo, chave_bucket, chaves_buckets, granularidade_vendas
from pdv.utils.valores import dinheiro

logger = logging.getLogger(__name__)

# orders that count as revenue
STATUS_VENDA = ('delivered', 'completed')
SEM_METODO = 'Não informado'
SEM_CATEGORIA = 'Sem Categoria'


def _pedidos_faturados(db: Session, periodo: Periodo):
    inicio, fim = periodo.utc()
    return (
        db.query(Pedido.created_at, Pedido.total_amount, Pedido.payment_method)
        .filter(Pedido.created_at >= inicio, Pedido.created_at < fim, Pedido.status.in_(STATUS_VENDA))
        .all()
    )


def agregar_vendas(linhas: Iterable[Tuple[datetime, object]], periodo: Periodo, granularidade: str) -> dict:
    """Group (created_at, amount) pairs into the period's buckets."""
    buckets = OrderedDict((k, dinheiro(0)) for k in chaves_buckets(periodo, granularidade))
    total = dinheiro(0)
    count = 0
    for created_at, valor in linhas:
        chave = chave_bucket(created_at, granularidade, periodo.tz)
        if chave not in buckets:
            # created_at filtered in SQL; only a clock edge can land here
            continue
        buckets[chave] += dinheiro(valor)
        total += dinheiro(valor)
        count += 1
    return {
        'period': periodo.nome,
        'start': periodo.inicio,
        'end': periodo.fim,
        'granularity': granularidade,
        'points': [{'label': k, 'total': float(v)} for k, v in buckets.items()],
        'total': float(total),
        'count': count,
    }


def serie_vendas(db: Session, periodo: Periodo, granularidade: Optional[str] = None) -> dict:
    granularidade = granularidade or granularidade_vendas(periodo)
    linhas = [(r.created_at, r.total_amount) for r in _pedidos_faturados(db, periodo)]
    return agregar_vendas(linhas, periodo, granularidade)


def metodos_pagamento(db: Session, periodo: Periodo) -> list:
    """Count and revenue per payment_method, biggest total first."""
    grupos = {}
    for r in _pedidos_faturados(db, periodo):
        metodo = (r.payment_method or '').strip() or SEM_METODO
        atual = grupos.setdefault(metodo, {'method': metodo, 'count': 0, 'total': dinheiro(0)})
        atual['count'] += 1
        atual['total'] += dinheiro(r.total_amount)
    saida = sorted(grupos.values(), key=lambda g: (-g['total'], g['method']))
    for g in saida:
        g['total'] = float(g['total'])
    return saida


def atividade_condicionais(db: Session, periodo: Periodo, hoje: Optional[date] = None) -> dict:
    """Open conditionals created in the period, active vs overdue per bucket.

    Sold and returned conditionals are not counted.
    """
    granularidade = granularidade_vendas(periodo)
    hoje = hoje or local_today(tz=periodo.tz)
    inicio, fim = periodo.utc()
    rows = (
        db.query(Condicional)
        .filter(Condicional.created_at >= inicio, Condicional.created_at < fim)
        .all()
    )
    buckets = OrderedDict((k, {'label': k, 'active': 0, 'overdue': 0}) for k in chaves_buckets(periodo, granularidade))
    for c in rows:
        status = status_efetivo(c, hoje)
        if status not in ('active', 'overdue'):
            continue
        chave = chave_bucket(c.created_at, granularidade, periodo.tz)
        if chave in buckets:
            buckets[chave][status] += 1
    return {'granularity': granularidade, 'points': list(buckets.values())}


def condicionais_recentes(db: Session, hoje: Optional[date] = None, limite: int = 5) -> list:
    rows = db.query(Condicional).order_by(Condicional.created_at.desc(), Condicional.id.desc()).limit(limite).all()
    return [
        {
            'id': c.id,
            'customer_name': c.customer_name,
            'customer_phone': c.customer_phone,
            'items': sum(it.quantity for it in c.items),
            'value': float(c.total_value or 0),
            'due_date': c.due_date,
            'status': status_efetivo(c, hoje),
        }
        for c in rows
    ]


def resumo(db: Session, periodo: Periodo, hoje: Optional[date] = None) -> dict:
    """Headline numbers for the dashboard cards."""
    hoje = hoje or local_today(tz=periodo.tz)
    vendas = serie_vendas(db, periodo)
    count = vendas['count']
    revenue = vendas['total']

    abertas = db.query(Condicional).filter(Condicional.status.in_(STATUS_ABERTOS)).all()
    valor_aberto = sum((dinheiro(c.total_value) for c in abertas), dinheiro(0))
    atrasadas = sum(1 for c in abertas if status_efetivo(c, hoje) == 'overdue')

    produtos = db.query(Produto).filter(Produto.status == 'active').all()
    baixo = sum(1 for p in produtos if estoque.estoque_baixo(p))
    zerado = sum(1 for p in produtos if estoque.sem_estoque(p))

    return {
        'period': periodo.nome,
        'revenue': revenue,
        'orders': count,
        'average_ticket': round(revenue / count, 2) if count else 0.0,
        'open_conditionals': len(abertas),
        'open_conditionals_value': float(valor_aberto),
        'overdue_conditionals': atrasadas,
        'low_stock': baixo,
        'out_of_stock': zerado,
        'recent_conditionals': condicionais_recentes(db, hoje),
    }


def estoque_por_categoria(db: Session) -> list:
    grupos = OrderedDict()
    for p in db.query(Produto).filter(Produto.status == 'active').order_by(Produto.category, Produto.name).all():
        nome = p.category or SEM_CATEGORIA
        atual = grupos.setdefault(nome, {'category': nome, 'stock': 0, 'low_stock': 0})
        atual['stock'] += p.stock or 0
        if estoque.estoque_baixo(p) or estoque.sem_estoque(p):
            atual['low_stock'] += 1
    return list(grupos.values())
