from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional

from pdv.db.session import get_db
from pdv.schemas.dashboard import (
    EstoqueCategoria,
    MetodoPagamento,
    ResumoDashboard,
    SerieCondicionais,
    SerieVendas,
)
from pdv.services import dashboard
from pdv.services.periodos import granularidade_adaptativa, resolver_periodo

router = APIRouter(prefix="/stats", tags=["Stats"])


def periodo_param(period: str = 'today', startDate: Optional[date] = None, endDate: Optional[date] = None):
    """Dependency resolving ?period=&startDate=&endDate= into a Periodo.

    startDate/endDate (YYYY-MM-DD, inclusive) only apply to period=custom.
    """
    return resolver_periodo(period, data_inicial=startDate, data_final=endDate)


@router.get("/sales", response_model=SerieVendas)
def sales(periodo=Depends(periodo_param), db: Session = Depends(get_db)):
    """
    Revenue series for the period: hourly buckets for a single day, daily
    otherwise. Only delivered/completed orders count.
    """
    return dashboard.serie_vendas(db, periodo)


@router.get("/sales/dynamic", response_model=SerieVendas)
def sales_dynamic(periodo=Depends(periodo_param), db: Session = Depends(get_db)):
    """Same series with hour/day/week/month buckets picked from the span."""
    return dashboard.serie_vendas(db, periodo, granularidade_adaptativa(periodo))


@router.get("/payment-methods", response_model=List[MetodoPagamento])
def payment_methods(periodo=Depends(periodo_param), db: Session = Depends(get_db)):
    return dashboard.metodos_pagamento(db, periodo)


@router.get("/conditionals", response_model=SerieCondicionais)
def conditionals_activity(periodo=Depends(periodo_param), db: Session = Depends(get_db)):
    return dashboard.atividade_condicionais(db, periodo)


@router.get("/summary", response_model=ResumoDashboard)
def summary(periodo=Depends(periodo_param), db: Session = Depends(get_db)):
    return dashboard.resumo(db, periodo)


@router.get("/stock-by-category", response_model=List[EstoqueCategoria])
def stock_by_category(db: Session = Depends(get_db)):
    return dashboard.estoque_por_categoria(db)
