from datetime import datetime
from unittest.mock import Mock, patch

import pytest
import requests

from clinic_admin.extensions import db
from clinic_admin.models import TokenUsage
from clinic_admin.services.cost_service import ExchangeRateCache, calculate_cost
from clinic_admin.utils.dates import UTC

PERIOD = {'start': '2025-06-10', 'end': '2025-06-11'}


class StubRates:
    def get_usd_to_brl(self):
        return 4.0, True


@pytest.fixture
def rates(monkeypatch):
    from clinic_admin.routes import costs

    monkeypatch.setattr(costs, 'exchange_rates', StubRates())


def add_usage(phone, model, input_tokens, output_tokens, created_at):
    db.session.add(TokenUsage(
        phone_number=phone,
        model_name=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        provider='openai',
        created_at=created_at,
    ))
    db.session.commit()


@pytest.fixture
def usage(app, make_user):
    make_user('5511999990000', 'Maria Souza')
    add_usage('5511999990000', 'gpt-4o', 1_000_000, 1_000_000, datetime(2025, 6, 10, 15, 0, tzinfo=UTC))
    add_usage('5511999990000', 'gpt-4o-mini', 1_000_000, 0, datetime(2025, 6, 11, 1, 0, tzinfo=UTC))
    add_usage('5511888880000', 'modelo-desconhecido', 500, 500, datetime(2025, 6, 11, 14, 0, tzinfo=UTC))
    # Outside the window in clinic time
    add_usage('5511888880000', 'gpt-4o', 9, 9, datetime(2025, 6, 12, 4, 0, tzinfo=UTC))


def test_calculate_cost():
    assert calculate_cost(1_000_000, 1_000_000, 'gpt-4o') == 12.5
    assert calculate_cost(1000, 500, 'gpt-4o-mini') == 0.00045
    assert calculate_cost(123, 456, 'llama3.1-8b') == 0.000058


def test_unknown_model_costs_nothing():
    assert calculate_cost(1_000_000, 1_000_000, 'desconhecido') == 0
    assert calculate_cost(1_000_000, 1_000_000, None) == 0


def test_summary(client, usage, rates):
    response = client.get('/api/admin/costs/summary', query_string=PERIOD)

    assert response.status_code == 200
    assert response.get_json() == {
        'total_tokens': 3_001_000,
        'input_tokens': 2_000_500,
        'output_tokens': 1_000_500,
        'estimated_cost_usd': 12.65,
        'estimated_cost_brl': 50.6,
        'exchange_rate': 4.0,
        'period': PERIOD,
    }


def test_by_model(client, usage):
    models = client.get('/api/admin/costs/by-model', query_string=PERIOD).get_json()

    assert [row['model_name'] for row in models] == ['gpt-4o', 'gpt-4o-mini', 'modelo-desconhecido']
    assert models[0] == {
        'model_name': 'gpt-4o',
        'total_tokens': 2_000_000,
        'input_tokens': 1_000_000,
        'output_tokens': 1_000_000,
    }


def test_by_user_prices_with_first_model(client, usage):
    users = client.get('/api/admin/costs/by-user', query_string=PERIOD).get_json()

    assert users[0]['phone_number'] == '5511999990000'
    assert users[0]['complete_name'] == 'Maria Souza'
    assert users[0]['interacoes'] == 2
    assert users[0]['total_tokens'] == 3_000_000
    # 2M input + 1M output, all priced as gpt-4o
    assert users[0]['estimated_cost_usd'] == 15.0
    assert users[1]['complete_name'] is None
    assert users[1]['estimated_cost_usd'] == 0


def test_tokens_by_day_uses_clinic_days(client, usage):
    days = client.get('/api/admin/costs/tokens-by-day', query_string=PERIOD).get_json()

    assert days == [
        {'dia': '2025-06-10', 'entrada': 2_000_000, 'saida': 1_000_000},
        {'dia': '2025-06-11', 'entrada': 500, 'saida': 500},
    ]


def test_cost_by_day(client, usage):
    days = client.get('/api/admin/costs/cost-by-day', query_string=PERIOD).get_json()

    assert days == [
        {'dia': '2025-06-10', 'custo_usd': 12.65},
        {'dia': '2025-06-11', 'custo_usd': 0},
    ]


@pytest.mark.parametrize('endpoint', ['summary', 'by-model', 'by-user', 'cost-by-day', 'tokens-by-day'])
def test_period_is_required(client, endpoint):
    response = client.get(f'/api/admin/costs/{endpoint}', query_string={'start': '2025-06-10'})
    assert response.status_code == 400


def test_invalid_period(client):
    response = client.get('/api/admin/costs/summary', query_string={'start': '2025-06-10', 'end': '10/06/2025'})
    assert response.status_code == 400


def rate_response(bid):
    response = Mock()
    response.json.return_value = {'USDBRL': {'bid': bid}}
    response.raise_for_status.return_value = None
    return response


class TestExchangeRateCache:

    def test_fetches_then_serves_from_cache(self, app):
        clock = Mock(return_value=0)
        cache = ExchangeRateCache(clock=clock)

        with patch('clinic_admin.services.cost_service.requests.get', return_value=rate_response('5.4321')) as get:
            assert cache.get_usd_to_brl() == (5.4321, False)
            clock.return_value = 3599
            assert cache.get_usd_to_brl() == (5.4321, True)

        assert get.call_count == 1

    def test_refreshes_after_ttl(self, app):
        clock = Mock(return_value=0)
        cache = ExchangeRateCache(clock=clock)

        with patch('clinic_admin.services.cost_service.requests.get',
                   side_effect=[rate_response('5.0'), rate_response('5.2')]):
            cache.get_usd_to_brl()
            clock.return_value = 3600
            assert cache.get_usd_to_brl() == (5.2, False)

    def test_falls_back_when_source_is_down(self, app):
        cache = ExchangeRateCache(clock=Mock(return_value=0))

        with patch('clinic_admin.services.cost_service.requests.get',
                   side_effect=requests.ConnectionError('offline')):
            assert cache.get_usd_to_brl() == (5.0, True)

    def test_keeps_last_rate_when_refresh_fails(self, app):
        clock = Mock(return_value=0)
        cache = ExchangeRateCache(clock=clock)

        with patch('clinic_admin.services.cost_service.requests.get',
                   side_effect=[rate_response('5.3'), rate_response('not-a-number')]):
            cache.get_usd_to_brl()
            clock.return_value = 7200
            assert cache.get_usd_to_brl() == (5.3, True)

    def test_rejects_non_positive_rate(self, app):
        cache = ExchangeRateCache(clock=Mock(return_value=0))

        with patch('clinic_admin.services.cost_service.requests.get', return_value=rate_response('0')):
            assert cache.get_usd_to_brl() == (5.0, True)
