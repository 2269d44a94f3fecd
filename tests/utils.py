from datetime import datetime, timedelta, timezone

PASSWORD = 'secret123'

BILLING = {
    'street': '1 Congress Ave',
    'city': 'Austin',
    'state': 'TX',
    'country': 'US',
    'postal_code': '78701',
}

CARD = {
    'method': 'card',
    'card_number': '4242 4242 4242 4242',
    'expiry': '12/30',
    'cvc': '123',
    'cardholder_name': 'Test Buyer',
}


def bearer(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def future(days: int = 30, hours: int = 0) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days, hours=hours)).isoformat()


def order_payload(event: dict, quantities: dict, **overrides) -> dict:
    """Order body buying ``quantities`` (ticket type name -> count) of ``event``."""
    by_name = {ticket_type['name']: ticket_type['id'] for ticket_type in event['ticket_types']}
    payload = {
        'event_id': event['id'],
        'items': [
            {'ticket_type_id': by_name[name], 'quantity': quantity}
            for name, quantity in quantities.items()
        ],
        'buyer_profile': {'name': 'Test Buyer', 'email': 'buyer@example.com'},
        'billing_address': BILLING,
        'payment': CARD,
    }
    payload.update(overrides)
    return payload
