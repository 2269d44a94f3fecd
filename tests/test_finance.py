from decimal import Decimal
from http import HTTPStatus

import pytest

pytestmark = pytest.mark.anyio

BANK = {
    'account_type': 'bank',
    'account_name': 'Payouts',
    'bank_details': {
        'account_number': '0001-2345-6789',
        'routing_number': '110000000',
        'bank_name': 'First Austin',
        'account_type': 'checking',
    },
}


def card(name='Visa', is_default=False):
    return {
        'account_type': 'card',
        'account_name': name,
        'card_details': {'last_four_digits': '4242', 'expiry_month': 12, 'expiry_year': 2099, 'card_type': 'visa'},
        'is_default': is_default,
    }


async def create_account(async_client, headers, payload=BANK):
    response = await async_client.post('/api/finance/accounts', json=payload, headers=headers)
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


async def add_transaction(async_client, headers, account_id, transaction_type, amount, **extra):
    return await async_client.post(
        f'/api/finance/accounts/{account_id}/transactions',
        json={'transaction_type': transaction_type, 'amount': amount, 'description': 'Ticket sales', **extra},
        headers=headers,
    )


async def complete(async_client, headers, account_id, transaction_id):
    return await async_client.post(
        f'/api/finance/accounts/{account_id}/transactions/{transaction_id}/complete',
        headers=headers,
    )


async def test_create_bank_account_keeps_only_last_digits(async_client, user_headers):
    account = await create_account(async_client, user_headers)

    assert account['account_type'] == 'bank'
    assert account['details'] == {'bank_name': 'First Austin', 'account_type': 'checking', 'account_last4': '6789'}
    assert account['verification_status'] == 'unverified'
    assert account['is_verified'] is False
    assert account['currency'] == 'USD'
    assert Decimal(account['balance']['total']) == 0


async def test_account_needs_matching_details(async_client, user_headers):
    response = await async_client.post(
        '/api/finance/accounts',
        json={'account_type': 'card', 'account_name': 'Visa'},
        headers=user_headers,
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert 'card_details' in response.json()['error']['details']['field_errors']

    response = await async_client.post(
        '/api/finance/accounts',
        json={**BANK, 'account_type': 'paypal', 'paypal_details': {'email': 'Pay@Example.com'}},
        headers=user_headers,
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert list(response.json()['error']['details']['field_errors']) == ['bank_details']


async def test_wallet_account_needs_no_details(async_client, user_headers):
    account = await create_account(
        async_client, user_headers, {'account_type': 'wallet', 'account_name': 'Wallet', 'currency': 'eur'}
    )

    assert account['details'] == {}
    assert account['currency'] == 'EUR'


async def test_one_default_account_per_type(async_client, user_headers):
    first = await create_account(async_client, user_headers, card('Visa', is_default=True))
    bank = await create_account(async_client, user_headers, {**BANK, 'is_default': True})
    second = await create_account(async_client, user_headers, card('Backup', is_default=True))

    response = await async_client.get('/api/finance/accounts', headers=user_headers)

    defaults = {account['id']: account['is_default'] for account in response.json()}
    assert defaults == {first['id']: False, bank['id']: True, second['id']: True}


async def test_update_account(async_client, user_headers):
    account = await create_account(async_client, user_headers, card())

    response = await async_client.put(
        f"/api/finance/accounts/{account['id']}",
        json={'account_name': ' Travel card ', 'card_details': {'last_four_digits': '1111'}},
        headers=user_headers,
    )

    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data['account_name'] == 'Travel card'
    assert data['details'] == {'last_four_digits': '1111'}


async def test_update_rejects_details_of_another_type(async_client, user_headers):
    account = await create_account(async_client, user_headers, card())

    response = await async_client.put(
        f"/api/finance/accounts/{account['id']}",
        json={'paypal_details': {'email': 'me@example.com'}},
        headers=user_headers,
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST


async def test_accounts_are_private(async_client, user_headers, organizer_headers):
    account = await create_account(async_client, user_headers)

    response = await async_client.get(f"/api/finance/accounts/{account['id']}", headers=organizer_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND

    response = await add_transaction(async_client, organizer_headers, account['id'], 'credit', '10.00')
    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_delete_account_is_soft(async_client, user_headers):
    account = await create_account(async_client, user_headers, card(is_default=True))

    response = await async_client.delete(f"/api/finance/accounts/{account['id']}", headers=user_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()['message'] == 'Financial account deleted'

    response = await async_client.get('/api/finance/accounts', headers=user_headers)
    assert response.json() == []

    response = await async_client.get(f"/api/finance/accounts/{account['id']}", headers=user_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_credit_is_pending_until_completed(async_client, user_headers):
    account = await create_account(async_client, user_headers)

    response = await add_transaction(
        async_client, user_headers, account['id'], 'credit', '100.00', metadata={'payout': 'june'}
    )
    assert response.status_code == HTTPStatus.CREATED
    transaction = response.json()
    assert transaction['status'] == 'pending'
    assert transaction['currency'] == 'USD'
    assert transaction['reference'].startswith('txn_')
    assert transaction['metadata'] == {'payout': 'june'}

    balance = (await async_client.get(f"/api/finance/accounts/{account['id']}", headers=user_headers)).json()['balance']
    assert Decimal(balance['pending']) == Decimal('100')
    assert Decimal(balance['available']) == 0

    response = await complete(async_client, user_headers, account['id'], transaction['id'])
    assert response.status_code == HTTPStatus.OK
    assert response.json()['status'] == 'completed'
    assert response.json()['completed_at'] is not None

    balance = (await async_client.get(f"/api/finance/accounts/{account['id']}", headers=user_headers)).json()['balance']
    assert Decimal(balance['pending']) == 0
    assert Decimal(balance['available']) == Decimal('100')
    assert Decimal(balance['total']) == Decimal('100')


async def test_transaction_completes_once(async_client, user_headers):
    account = await create_account(async_client, user_headers)
    transaction = (await add_transaction(async_client, user_headers, account['id'], 'credit', '25.00')).json()
    await complete(async_client, user_headers, account['id'], transaction['id'])

    response = await complete(async_client, user_headers, account['id'], transaction['id'])

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()['error']['error_code'] == 'INVALID_STATUS_TRANSITION'
    balance = (await async_client.get(f"/api/finance/accounts/{account['id']}", headers=user_headers)).json()['balance']
    assert Decimal(balance['available']) == Decimal('25')


async def test_complete_unknown_transaction(async_client, user_headers):
    account = await create_account(async_client, user_headers)
    other = await create_account(async_client, user_headers, card())
    transaction = (await add_transaction(async_client, user_headers, other['id'], 'credit', '5.00')).json()

    response = await complete(async_client, user_headers, account['id'], transaction['id'])

    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_debit_cannot_exceed_available_balance(async_client, user_headers):
    account = await create_account(async_client, user_headers)
    credit = (await add_transaction(async_client, user_headers, account['id'], 'credit', '100.00')).json()

    # Pending money cannot be spent yet.
    response = await add_transaction(async_client, user_headers, account['id'], 'debit', '40.00')
    assert response.status_code == HTTPStatus.BAD_REQUEST
    error = response.json()['error']
    assert error['error_code'] == 'INSUFFICIENT_FUNDS'
    assert Decimal(error['details']['requested']) == Decimal('40')
    assert Decimal(error['details']['available']) == 0

    await complete(async_client, user_headers, account['id'], credit['id'])
    response = await add_transaction(async_client, user_headers, account['id'], 'debit', '40.00')
    assert response.status_code == HTTPStatus.CREATED

    balance = (await async_client.get(f"/api/finance/accounts/{account['id']}", headers=user_headers)).json()['balance']
    assert Decimal(balance['available']) == Decimal('60')

    response = await async_client.get(f"/api/finance/accounts/{account['id']}/transactions", headers=user_headers)
    assert response.json()['total'] == 2


async def test_non_positive_amount_is_rejected(async_client, user_headers):
    account = await create_account(async_client, user_headers)

    response = await add_transaction(async_client, user_headers, account['id'], 'credit', '0')

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


async def test_list_transactions_is_paginated(async_client, user_headers):
    account = await create_account(async_client, user_headers)
    for amount in ('1.00', '2.00', '3.00'):
        await add_transaction(async_client, user_headers, account['id'], 'credit', amount)

    url = f"/api/finance/accounts/{account['id']}/transactions"
    first = (await async_client.get(url, params={'page': 1, 'size': 2}, headers=user_headers)).json()
    second = (await async_client.get(url, params={'page': 2, 'size': 2}, headers=user_headers)).json()

    assert (first['total'], first['pages'], first['has_more']) == (3, 2, True)
    assert len(first['transactions']) == 2
    assert second['has_more'] is False
    assert len(second['transactions']) == 1


async def test_dashboard_sums_balances(async_client, user_headers):
    bank = await create_account(async_client, user_headers)
    visa = await create_account(async_client, user_headers, card())
    paid = (await add_transaction(async_client, user_headers, bank['id'], 'credit', '80.00')).json()
    await complete(async_client, user_headers, bank['id'], paid['id'])
    await add_transaction(async_client, user_headers, visa['id'], 'credit', '20.50')

    response = await async_client.get('/api/finance/dashboard', headers=user_headers)

    assert response.status_code == HTTPStatus.OK
    data = response.json()
    summary = data['summary']
    assert Decimal(summary['total_available']) == Decimal('80')
    assert Decimal(summary['total_pending']) == Decimal('20.50')
    assert Decimal(summary['total_balance']) == Decimal('100.50')
    assert summary['total_accounts'] == 2
    assert summary['verified_accounts'] == 0
    assert len(data['accounts']) == 2
    assert {txn['account_name'] for txn in data['recent_transactions']} == {'Payouts', 'Visa'}


async def test_empty_dashboard(async_client, user_headers):
    response = await async_client.get('/api/finance/dashboard', headers=user_headers)

    data = response.json()
    assert data['summary']['total_accounts'] == 0
    assert Decimal(data['summary']['total_balance']) == 0
    assert data['recent_transactions'] == []
