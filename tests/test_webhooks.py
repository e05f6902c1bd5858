import json

import pytest

from aghosh.container import get_container
from aghosh.extensions import db
from aghosh.models import Donation, EventDonation, ProcessedPayment, Sponsorship
from aghosh.payments.gateway import PaymentGateway

from conftest import FakeGateway, donation_metadata, sign_payload, webhook_event


def _post(client, payload, signature=None, content_type='application/json'):
    headers = {}
    if signature is not None:
        headers['Stripe-Signature'] = signature
    return client.post('/stripe/webhook', data=payload, headers=headers, content_type=content_type)


def _succeeded_intent(payment_intent_id='pi_wh', metadata=None):
    metadata = metadata or donation_metadata()
    return webhook_event('payment_intent.succeeded', {
        'id': payment_intent_id,
        'object': 'payment_intent',
        'status': 'succeeded',
        'amount': 500000,
        'currency': 'pkr',
        'metadata': metadata,
    })


def test_signed_event_records_donation(client, gateway):
    payload = _succeeded_intent()

    response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200
    assert response.get_json() == {'received': True, 'outcome': 'recorded'}
    donation = Donation.query.one()
    assert donation.amount == 5000
    assert donation.category == 'education'


def test_redelivered_event_is_acknowledged_without_second_record(client, gateway):
    payload = _succeeded_intent()

    first = _post(client, payload, sign_payload(payload))
    second = _post(client, payload, sign_payload(payload))

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.get_json()['outcome'] == 'duplicate'
    assert Donation.query.count() == 1


def test_missing_signature_rejected(client, gateway):
    response = _post(client, _succeeded_intent())

    assert response.status_code == 400
    assert Donation.query.count() == 0
    assert ProcessedPayment.query.count() == 0


def test_wrong_secret_rejected(client, gateway):
    payload = _succeeded_intent()

    response = _post(client, payload, sign_payload(payload, secret='whsec_attacker'))

    assert response.status_code == 400
    assert 'signature' in response.get_json()['message'].lower()
    assert Donation.query.count() == 0


def test_tampered_body_rejected(client, gateway):
    payload = _succeeded_intent()
    signature = sign_payload(payload)
    tampered = payload.replace(b'"5000"', b'"500000"')

    response = _post(client, tampered, signature)

    assert response.status_code == 400
    assert Donation.query.count() == 0


def test_stale_timestamp_rejected(client, gateway):
    payload = _succeeded_intent()

    response = _post(client, payload, sign_payload(payload, timestamp=1_000_000_000))

    assert response.status_code == 400
    assert Donation.query.count() == 0


def test_malformed_signature_header_rejected(client, gateway):
    response = _post(client, _succeeded_intent(), 'not-a-signature')

    assert response.status_code == 400
    assert Donation.query.count() == 0


def test_signed_garbage_body_rejected(client, gateway):
    payload = b'{not json'

    response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 400


def test_non_json_content_type_still_verified(client, gateway):
    payload = _succeeded_intent('pi_text')

    response = _post(client, payload, sign_payload(payload), content_type='text/plain')

    assert response.status_code == 200
    assert Donation.query.count() == 1


def test_unhandled_event_acknowledged(client, gateway):
    payload = webhook_event('invoice.paid', {'id': 'in_1', 'object': 'invoice'})

    response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200
    assert response.get_json()['outcome'] == 'ignored'


def test_checkout_completed_records_via_intent_key(client, gateway):
    metadata = donation_metadata(pkr='8780', category='health')
    payload = webhook_event('checkout.session.completed', {
        'id': 'cs_test_hook',
        'object': 'checkout.session',
        'payment_status': 'paid',
        'payment_intent': 'pi_under_session',
        'amount_total': 2500,
        'currency': 'gbp',
        'metadata': metadata,
    })
    intent_payload = _succeeded_intent('pi_under_session', metadata)

    assert _post(client, payload, sign_payload(payload)).get_json()['outcome'] == 'recorded'
    assert _post(client, intent_payload, sign_payload(intent_payload)).get_json()['outcome'] == 'duplicate'
    assert Donation.query.one().amount == 8780


def test_sponsorship_intent_webhook_marks_paid(client, gateway, make_sponsorship):
    sponsorship = make_sponsorship()
    payload = webhook_event('payment_intent.succeeded', {
        'id': 'pi_sponsor',
        'object': 'payment_intent',
        'status': 'succeeded',
        'amount': 1500000,
        'currency': 'pkr',
        'metadata': {'type': 'monthly_sponsorship', 'sponsorshipId': str(sponsorship.id)},
        'latest_charge': 'ch_unexpanded',
    })

    response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200
    stored = db.session.get(Sponsorship, sponsorship.id)
    assert stored.payment_status == 'completed'
    assert stored.stripe_payment_intent_id == 'pi_sponsor'
    assert stored.stripe_receipt_url is None
    assert Donation.query.count() == 0


def test_event_donation_created_then_paid_by_webhook(client, gateway, event):
    created = client.post('/stripe/create-event-donation-intent', json={
        'eventId': event.id, 'amount': 2500, 'donorName': 'Sana Malik', 'donorEmail': 'sana@example.com',
    }).get_json()
    intent = gateway.payments[created['paymentIntentId']]
    payload = webhook_event('payment_intent.succeeded', {
        'id': intent.external_id,
        'object': 'payment_intent',
        'status': 'succeeded',
        'amount': intent.amount,
        'currency': 'pkr',
        'metadata': intent.metadata,
    })

    first = _post(client, payload, sign_payload(payload))
    again = _post(client, payload, sign_payload(payload))

    assert first.get_json()['outcome'] == 'recorded'
    assert again.get_json()['outcome'] == 'duplicate'
    assert db.session.get(EventDonation, created['eventDonationId']).payment_status == 'completed'
    assert ProcessedPayment.query.count() == 1
    assert Donation.query.count() == 0


@pytest.mark.parametrize('secret', ['', None])
def test_unconfigured_webhook_secret_rejects_everything(app, client, secret):
    get_container().register_instance('payment_gateway', FakeGateway(webhook_secret=secret),
                                      service_type=PaymentGateway)
    payload = _succeeded_intent()

    response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 400
    assert Donation.query.count() == 0


def test_webhook_does_not_require_csrf(app, gateway):
    app.config['WTF_CSRF_ENABLED'] = True
    payload = _succeeded_intent('pi_csrf')

    response = _post(app.test_client(), payload, sign_payload(payload))

    assert response.status_code == 200
    assert json.loads(response.data)['outcome'] == 'recorded'
