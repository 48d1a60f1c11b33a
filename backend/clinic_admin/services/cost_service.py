# clinic_admin/services/cost_service.py
"""
LLM usage pricing and cost reports
"""
import logging
import time
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

import requests
from flask import current_app
from sqlalchemy import func

from clinic_admin.extensions import db
from clinic_admin.models import TokenUsage, User
from clinic_admin.utils.dates import local_date, local_day_window

logger = logging.getLogger(__name__)

# USD per 1M tokens
MODEL_PRICES = {
    'llama-3.3-70b': {'input': 0.85, 'output': 1.20},
    'gpt-4o': {'input': 2.50, 'output': 10.00},
    'gpt-4o-mini': {'input': 0.15, 'output': 0.60},
    'gpt-4.1': {'input': 2.00, 'output': 8.00},
    'gpt-4.1-mini': {'input': 0.40, 'output': 1.60},
    'llama3.1-8b': {'input': 0.10, 'output': 0.10},
}


def calculate_cost(input_tokens: int, output_tokens: int, model: Optional[str]) -> float:
    """Estimated USD cost; unknown models cost nothing"""
    price = MODEL_PRICES.get(model or '')
    if not price:
        return 0
    cost = (input_tokens * price['input'] + output_tokens * price['output']) / 1_000_000
    return round(cost, 6)


class ExchangeRateCache:
    """USD to BRL rate, cached in-process for EXCHANGE_RATE_TTL_SECONDS"""

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self.rate = None
        self.fetched_at = None

    def _fetch(self) -> float:
        config = current_app.config
        response = requests.get(
            config['EXCHANGE_RATE_URL'],
            timeout=config.get('EXCHANGE_RATE_TIMEOUT_SECONDS', 5),
        )
        response.raise_for_status()
        return float(response.json()['USDBRL']['bid'])

    def get_usd_to_brl(self) -> Tuple[float, bool]:
        """Return (rate, served_from_cache)"""
        ttl = current_app.config.get('EXCHANGE_RATE_TTL_SECONDS', 3600)
        if self.rate is not None and self.clock() - self.fetched_at < ttl:
            return self.rate, True

        try:
            rate = self._fetch()
            if not rate > 0:
                raise ValueError(f"invalid exchange rate {rate}")
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            fallback = self.rate if self.rate is not None else current_app.config['EXCHANGE_RATE_FALLBACK']
            logger.warning(f"Exchange rate unavailable, using {fallback}: {e}")
            return fallback, True

        self.rate = rate
        self.fetched_at = self.clock()
        logger.info(f"USD/BRL exchange rate updated: {rate}")
        return rate, False


class CostReport:
    """Token usage aggregated over [start, end + 1 day) in clinic time"""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        self.lower, self.upper = local_day_window(start, end)

    @property
    def period(self) -> Dict:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}

    def _in_window(self, query):
        return query.filter(TokenUsage.created_at >= self.lower, TokenUsage.created_at < self.upper)

    def by_model(self) -> List[Dict]:
        total = func.coalesce(func.sum(TokenUsage.total_tokens), 0)
        rows = self._in_window(db.session.query(
            TokenUsage.model_name,
            total.label('total_tokens'),
            func.coalesce(func.sum(TokenUsage.input_tokens), 0).label('input_tokens'),
            func.coalesce(func.sum(TokenUsage.output_tokens), 0).label('output_tokens'),
        )).group_by(TokenUsage.model_name).order_by(total.desc()).all()

        return [{
            'model_name': row.model_name,
            'total_tokens': int(row.total_tokens),
            'input_tokens': int(row.input_tokens),
            'output_tokens': int(row.output_tokens),
        } for row in rows]

    def summary(self, rate: float) -> Dict:
        models = self.by_model()
        cost_usd = sum(
            calculate_cost(row['input_tokens'], row['output_tokens'], row['model_name'])
            for row in models
        )
        cost_usd = round(cost_usd, 6)

        return {
            'total_tokens': sum(row['total_tokens'] for row in models),
            'input_tokens': sum(row['input_tokens'] for row in models),
            'output_tokens': sum(row['output_tokens'] for row in models),
            'estimated_cost_usd': cost_usd,
            'estimated_cost_brl': round(cost_usd * rate, 2),
            'exchange_rate': rate,
            'period': self.period,
        }

    def by_user(self, limit: int = 20) -> List[Dict]:
        total = func.coalesce(func.sum(TokenUsage.total_tokens), 0)
        rows = self._in_window(db.session.query(
            TokenUsage.phone_number,
            User.complete_name,
            func.count(TokenUsage.id).label('interacoes'),
            func.coalesce(func.sum(TokenUsage.input_tokens), 0).label('input_tokens'),
            func.coalesce(func.sum(TokenUsage.output_tokens), 0).label('output_tokens'),
            total.label('total_tokens'),
            func.min(TokenUsage.model_name).label('first_model'),
        ).outerjoin(User, User.phone_number == TokenUsage.phone_number)) \
            .group_by(TokenUsage.phone_number, User.complete_name) \
            .order_by(total.desc()).limit(limit).all()

        # Priced with the user's first model only
        return [{
            'phone_number': row.phone_number,
            'complete_name': row.complete_name,
            'interacoes': int(row.interacoes),
            'input_tokens': int(row.input_tokens),
            'output_tokens': int(row.output_tokens),
            'total_tokens': int(row.total_tokens),
            'estimated_cost_usd': calculate_cost(int(row.input_tokens), int(row.output_tokens), row.first_model),
        } for row in rows]

    def _daily_totals(self):
        """Token sums per clinic-local day and model, oldest day first"""
        day = local_date(TokenUsage.created_at, self.lower).label('dia')
        return self._in_window(db.session.query(
            day,
            TokenUsage.model_name,
            func.coalesce(func.sum(TokenUsage.input_tokens), 0).label('input_tokens'),
            func.coalesce(func.sum(TokenUsage.output_tokens), 0).label('output_tokens'),
        )).group_by(day, TokenUsage.model_name).order_by(day.asc(), TokenUsage.model_name.asc()).all()

    def tokens_by_day(self) -> List[Dict]:
        days = OrderedDict()
        for row in self._daily_totals():
            bucket = days.setdefault(row.dia, {'dia': row.dia, 'entrada': 0, 'saida': 0})
            bucket['entrada'] += int(row.input_tokens)
            bucket['saida'] += int(row.output_tokens)
        return list(days.values())

    def cost_by_day(self) -> List[Dict]:
        days = OrderedDict()
        for row in self._daily_totals():
            cost = calculate_cost(int(row.input_tokens), int(row.output_tokens), row.model_name)
            days[row.dia] = days.get(row.dia, 0) + cost
        return [{'dia': day, 'custo_usd': round(cost, 6)} for day, cost in days.items()]
