from decimal import Decimal
from uuid import uuid4

import pytest

from crowd_ticketing.models import ApplicationStatus, EventStatus, PartnershipApplication
from crowd_ticketing.schemas.application import PartnershipTerms
from crowd_ticketing.services.app_service import summarize_ratings
from crowd_ticketing.services.application_service import apply_review
from crowd_ticketing.services.checkout import (
    PricedLine,
    TicketSelection,
    available_tickets,
    calculate_order_totals,
    checkout_step_errors,
    clamp_quantity,
    max_selectable,
)
from crowd_ticketing.services.event_service import can_transition, slugify
from crowd_ticketing.services.order_service import generate_order_number


def test_available_never_negative():
    assert available_tickets(10, 4) == 6
    assert available_tickets(10, 12) == 0


def test_max_selectable_is_smaller_of_available_and_per_order_limit():
    assert max_selectable(100, 0, 10) == 10
    assert max_selectable(100, 97, 10) == 3
    assert max_selectable(5, 5, 10) == 0


@pytest.mark.parametrize(
    ('current', 'change', 'maximum', 'expected'),
    [
        (0, 1, 3, 1),
        (3, 1, 3, 3),
        (0, -1, 3, 0),
        (2, -1, 3, 1),
        (5, 1, 3, 3),
        (1, 1, 0, 0),
    ],
)
def test_clamp_quantity(current, change, maximum, expected):
    assert clamp_quantity(current, change, maximum) == expected


def test_ticket_selection_tracks_quantities():
    general, vip = uuid4(), uuid4()
    selection = TicketSelection()

    selection.change(general, 1, 10)
    selection.change(general, 1, 10)
    selection.change(vip, 1, 1)
    assert selection.change(vip, 1, 1) == 1
    assert selection.total_quantity == 3

    selection.change(vip, -1, 1)
    assert vip not in selection.quantities
    assert selection.items() == [{'ticket_type_id': general, 'quantity': 2}]


def test_order_totals_for_three_fifty_dollar_tickets():
    line = PricedLine(ticket_type_id=uuid4(), name='GA', unit_price=Decimal('50.00'), quantity=3)

    totals = calculate_order_totals([line], Decimal('0.029'), Decimal('0.08')).rounded()

    assert totals.subtotal == Decimal('150.00')
    assert totals.fees == Decimal('4.35')
    assert totals.taxes == Decimal('12.00')
    assert totals.total == Decimal('166.35')
    assert totals.total_quantity == 3


def test_rounded_total_is_sum_of_rounded_parts():
    line = PricedLine(ticket_type_id=uuid4(), name='GA', unit_price=Decimal('19.99'), quantity=1)

    totals = calculate_order_totals([line], Decimal('0.029'), Decimal('0.08')).rounded()

    assert totals.fees == Decimal('0.58')
    assert totals.taxes == Decimal('1.60')
    assert totals.total == totals.subtotal + totals.fees + totals.taxes


def test_free_order_totals_are_zero():
    line = PricedLine(ticket_type_id=uuid4(), name='RSVP', unit_price=Decimal('0'), quantity=2)

    totals = calculate_order_totals([line]).rounded()

    assert totals.total == Decimal('0.00')
    assert totals.total_quantity == 2


def test_step_one_requires_a_ticket():
    assert checkout_step_errors(1, total_quantity=0) == {'items': ['Please select at least one ticket']}
    assert checkout_step_errors(1, total_quantity=2) == {}


def test_step_two_checks_buyer():
    errors = checkout_step_errors(2, buyer={'name': ' ', 'email': 'not-an-email'})

    assert set(errors) == {'buyer_profile.name', 'buyer_profile.email'}
    assert checkout_step_errors(2, buyer={'name': 'Ana', 'email': 'ana@example.com'}) == {}


def test_step_three_checks_billing_and_card():
    errors = checkout_step_errors(3, billing={'city': 'Austin'}, payment={'card_number': '1234'})

    assert set(errors) == {
        'billing_address.street',
        'billing_address.country',
        'billing_address.postal_code',
        'payment.card_number',
        'payment.expiry',
        'payment.cvc',
        'payment.cardholder_name',
    }


def test_step_three_skips_card_checks_for_free_orders():
    billing = {'street': '1 Main St', 'city': 'Austin', 'country': 'US', 'postal_code': '78701'}

    assert checkout_step_errors(3, billing=billing, payment={'method': 'free'}) == {}


def test_unknown_step():
    assert 'step' in checkout_step_errors(4)


@pytest.mark.parametrize(
    ('title', 'slug'),
    [
        ('Summer Rooftop Jazz', 'summer-rooftop-jazz'),
        ('  Rock & Roll -- Night!  ', 'rock-roll-night'),
        ('snake_case title', 'snake-case-title'),
        ('!!!', 'event'),
    ],
)
def test_slugify(title, slug):
    assert slugify(title) == slug


def test_event_status_transitions():
    assert can_transition(EventStatus.DRAFT, EventStatus.PUBLISHED)
    assert can_transition(EventStatus.PUBLISHED, EventStatus.POSTPONED)
    assert can_transition(EventStatus.POSTPONED, EventStatus.PUBLISHED)
    assert not can_transition(EventStatus.PUBLISHED, EventStatus.DRAFT)
    assert not can_transition(EventStatus.CANCELLED, EventStatus.PUBLISHED)
    assert not can_transition(EventStatus.COMPLETED, EventStatus.CANCELLED)


def test_order_number_format():
    number = generate_order_number()

    assert number.startswith('ORD-')
    assert len(number) == 14
    assert number[4:] == number[4:].upper()


def test_approval_stores_default_terms():
    application = PartnershipApplication()
    reviewer = uuid4()

    apply_review(application, ApplicationStatus.APPROVED, reviewer, notes='Welcome aboard')

    assert application.partnership_terms == {
        'commission_rate': 0,
        'minimum_revenue': 0,
        'contract_duration': 12,
    }
    assert application.approval_date is not None
    assert application.reviewed_by == reviewer
    assert application.reviewer_notes == 'Welcome aboard'


def test_leaving_approved_clears_terms_and_keeps_notes():
    application = PartnershipApplication()
    reviewer = uuid4()
    apply_review(
        application,
        ApplicationStatus.APPROVED,
        reviewer,
        notes='Strong audience',
        terms=PartnershipTerms(commission_rate=15, minimum_revenue=500, contract_duration=6),
    )
    assert application.partnership_terms['commission_rate'] == 15

    apply_review(application, ApplicationStatus.NEEDS_INFO, reviewer)

    assert application.status == ApplicationStatus.NEEDS_INFO
    assert application.partnership_terms is None
    assert application.reviewer_notes == 'Strong audience'


def test_summarize_ratings_empty():
    summary = summarize_ratings([])

    assert summary.average == 0.0
    assert summary.count == 0
    assert set(summary.distribution.values()) == {0}


@pytest.mark.parametrize(
    ('ratings', 'average'),
    [([5, 4, 4], 4.3), ([1, 2], 1.5), ([5, 5, 4, 4, 4, 4], 4.3), ([3], 3.0)],
)
def test_summarize_ratings_average(ratings, average):
    assert summarize_ratings(ratings).average == average


def test_summarize_ratings_distribution():
    summary = summarize_ratings([5, 5, 1])

    assert summary.count == 3
    assert summary.distribution == {'five': 2, 'four': 0, 'three': 0, 'two': 0, 'one': 1}
