"""Reporting periods and time buckets.

A period is a half-open range [inicio, fim) of civil time in the reporting
timezone (America/Sao_Paulo unless REPORT_TIMEZONE says otherwise). Weeks
start on Monday.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from pdv.core.errors import ValidationError
from pdv.core.timezone_utils import local_midnight, report_tz, to_local, utcnow

PERIODOS = ('today', 'yesterday', 'this-week', 'this-month', 'this-year', 'custom')
GRANULARIDADES = ('hour', 'day', 'week', 'month')


@dataclass(frozen=True)
class Periodo:
    nome: str
    inicio: datetime
    fim: datetime

    @property
    def tz(self):
        return self.inicio.tzinfo

    @property
    def dias(self) -> int:
        """Span in civil days, rounded up."""
        # same tzinfo on both ends: the difference is wall-clock time
        return math.ceil((self.fim - self.inicio).total_seconds() / 86400)

    def utc(self):
        return self.inicio.astimezone(timezone.utc), self.fim.astimezone(timezone.utc)


def _primeiro_do_mes_seguinte(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def resolver_periodo(
    nome: str = 'today',
    agora: Optional[datetime] = None,
    tz=None,
    data_inicial: Optional[date] = None,
    data_final: Optional[date] = None,
) -> Periodo:
    tz = tz or report_tz()
    nome = (nome or 'today').strip().lower()
    if nome not in PERIODOS:
        raise ValidationError(f"Período inválido: {nome!r}")
    hoje = to_local(agora or utcnow(), tz).date()

    if nome == 'yesterday':
        de, ate = hoje - timedelta(days=1), hoje
    elif nome == 'this-week':
        de = hoje - timedelta(days=hoje.weekday())
        ate = de + timedelta(days=7)
    elif nome == 'this-month':
        de = hoje.replace(day=1)
        ate = _primeiro_do_mes_seguinte(de)
    elif nome == 'this-year':
        de, ate = date(hoje.year, 1, 1), date(hoje.year + 1, 1, 1)
    elif nome == 'custom' and (data_inicial or data_final):
        de = data_inicial or data_final
        ultimo = data_final or data_inicial
        if ultimo < de:
            raise ValidationError("A data inicial deve ser anterior à data final")
        ate = ultimo + timedelta(days=1)
    else:
        # 'today', and 'custom' without dates
        de, ate = hoje, hoje + timedelta(days=1)

    return Periodo(nome=nome, inicio=local_midnight(de, tz), fim=local_midnight(ate, tz))


def granularidade_vendas(periodo: Periodo) -> str:
    """Sales and conditional series: hourly for a single day, daily otherwise."""
    return 'hour' if periodo.dias <= 1 else 'day'


def granularidade_adaptativa(periodo: Periodo) -> str:
    dias = periodo.dias
    if dias <= 1:
        return 'hour'
    if dias <= 30:
        return 'day'
    if dias <= 120:
        return 'week'
    return 'month'


def chave_bucket(dt: datetime, granularidade: str, tz=None) -> str:
    local = to_local(dt, tz)
    if granularidade == 'hour':
        return f"{local.hour:02d}:00"
    if granularidade == 'day':
        return local.date().isoformat()
    if granularidade == 'week':
        return (local.date() - timedelta(days=local.weekday())).isoformat()
    if granularidade == 'month':
        return local.strftime('%Y-%m')
    raise ValidationError(f"Granularidade inválida: {granularidade!r}")


def chaves_buckets(periodo: Periodo, granularidade: str) -> List[str]:
    """Every bucket label in the period, in chronological order."""
    tz = periodo.tz
    chaves = []
    if granularidade == 'hour':
        atual = periodo.inicio
        while atual < periodo.fim:
            chave = f"{atual.hour:02d}:00"
            if chave not in chaves:
                chaves.append(chave)
            atual += timedelta(hours=1)
        return chaves

    d = periodo.inicio.date()
    if granularidade == 'day':
        passo = lambda x: x + timedelta(days=1)  # noqa: E731
        rotulo = date.isoformat
    elif granularidade == 'week':
        d = d - timedelta(days=d.weekday())
        passo = lambda x: x + timedelta(days=7)  # noqa: E731
        rotulo = date.isoformat
    elif granularidade == 'month':
        d = d.replace(day=1)
        passo = _primeiro_do_mes_seguinte
        rotulo = lambda x: x.strftime('%Y-%m')  # noqa: E731
    else:
        raise ValidationError(f"Granularidade inválida: {granularidade!r}")

    while local_midnight(d, tz) < periodo.fim:
        chaves.append(rotulo(d))
        d = passo(d)
    return chaves
