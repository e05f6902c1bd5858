import pytest

from aghosh.extensions import db
from aghosh.models import Child, Donation, EventDonation, Sponsorship

from conftest import donation_metadata, login


def _donation_body(**overrides):
    body = {
        'amount': 17.96,
        'currency': 'USD',
        'category': 'education',
        'donationType': 'zakat',
        'donorName': 'Ayesha Khan',
        'donorEmail': 'ayesha@example.com',
        'isAnonymous': False,
        'message': 'For the school fund',
    }
    body.update(overrides)
    return body


class TestExchangeRates:

    def test_rate_table(self, client):
        response = client.get('/donate/exchange-rates')

        assert response.status_code == 200
        data = response.get_json()
        assert data['baseCurrency'] == 'pkr'
        assert data['rates']['usd'] == 278.5
        assert data['minimumAmounts']['usd'] == 5
        assert data['maximumAmount'] == 100000


class TestCreatePaymentIntent:

    def test_creates_intent_with_server_side_conversion(self, client, gateway):
        response = client.post('/donate/create-payment-intent', json=_donation_body())

        assert response.status_code == 200
        data = response.get_json()
        assert data['baseCurrencyEquivalent'] == 5002
        assert data['clientSecret'].startswith(data['paymentIntentId'])
        metadata = gateway.payments[data['paymentIntentId']].metadata
        assert metadata['pkrEquivalent'] == '5002'
        assert metadata['originalCurrency'] == 'usd'
        assert metadata['donationType'] == 'zakat'
        assert 'donorId' not in metadata

    def test_below_minimum_creates_nothing(self, client, gateway):
        response = client.post('/donate/create-payment-intent', json=_donation_body(amount=3))

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Minimum donation in USD is 5'
        assert gateway.created == []

    def test_above_maximum_creates_nothing(self, client, gateway):
        response = client.post('/donate/create-payment-intent', json=_donation_body(amount=250000))

        assert response.status_code == 400
        assert gateway.created == []

    @pytest.mark.parametrize('overrides,field', [
        ({'amount': None}, 'amount'),
        ({'category': 'weapons'}, 'category'),
        ({'donationType': 'tithe'}, 'donation_type'),
        ({'donorEmail': 'not-an-email'}, 'donor_email'),
        ({'currency': 'dollars'}, 'currency'),
    ])
    def test_invalid_fields_rejected(self, client, gateway, overrides, field):
        response = client.post('/donate/create-payment-intent', json=_donation_body(**overrides))

        assert response.status_code == 400
        assert field in response.get_json()['errors']
        assert gateway.created == []

    def test_unsupported_currency_rejected(self, client, gateway):
        response = client.post('/donate/create-payment-intent', json=_donation_body(currency='JPY'))

        assert response.status_code == 400
        assert gateway.created == []

    def test_non_json_body_rejected(self, client, gateway):
        response = client.post('/donate/create-payment-intent', data='amount=10', content_type='text/plain')

        assert response.status_code == 400
        assert gateway.created == []

    def test_anonymous_request_hides_name(self, client, gateway):
        response = client.post('/donate/create-payment-intent', json=_donation_body(isAnonymous=True))

        metadata = gateway.payments[response.get_json()['paymentIntentId']].metadata
        assert metadata['donorName'] == 'Anonymous'
        assert metadata['isAnonymous'] == 'true'

    def test_logged_in_donor_is_linked(self, client, gateway, donor_user):
        login(client, donor_user)

        response = client.post('/donate/create-payment-intent', json=_donation_body())

        metadata = gateway.payments[response.get_json()['paymentIntentId']].metadata
        assert metadata['donorId'] == str(donor_user.id)


class TestCheckout:

    def test_creates_session(self, client, gateway):
        response = client.post('/donate/checkout', json=_donation_body(amount=25, currency='gbp'))

        assert response.status_code == 200
        data = response.get_json()
        assert data['sessionId'].startswith('cs_test_')
        assert data['url'].endswith(data['sessionId'])
        assert data['baseCurrencyEquivalent'] == 8780

    def test_below_minimum_creates_nothing(self, client, gateway):
        response = client.post('/donate/checkout', json=_donation_body(amount=3))

        assert response.status_code == 400
        assert gateway.created == []


class TestConfirmPayment:

    def test_confirm_records_and_returns_receipt(self, client, gateway):
        gateway.add_payment_intent('pi_123', donation_metadata(), receipt_url='https://pay.stripe.com/receipts/x')

        response = client.post('/donate/confirm-payment', json={'paymentIntentId': 'pi_123'})

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['receiptNumber'].startswith('AGH-')
        assert data['transactionId'] == 'pi_123'
        assert data['stripeReceiptUrl'] == 'https://pay.stripe.com/receipts/x'
        assert data['baseCurrencyEquivalent'] == 5000
        assert data['donorEmail'] == 'ayesha@example.com'
        assert Donation.query.count() == 1

    def test_repeated_confirm_returns_success_without_new_row(self, client, gateway):
        gateway.add_payment_intent('pi_123', donation_metadata())

        responses = [client.post('/donate/confirm-payment', json={'paymentIntentId': 'pi_123'}) for _ in range(3)]

        assert all(r.status_code == 200 and r.get_json()['success'] for r in responses)
        assert Donation.query.count() == 1

    def test_not_succeeded(self, client, gateway):
        gateway.add_payment_intent('pi_wait', donation_metadata(), status='requires_action')

        response = client.post('/donate/confirm-payment', json={'paymentIntentId': 'pi_wait'})

        assert response.status_code == 200
        assert response.get_json() == {'success': False, 'status': 'requires_action'}
        assert Donation.query.count() == 0

    @pytest.mark.parametrize('body', [{}, {'paymentIntentId': ''}, {'paymentIntentId': 'cs_test_abc'}])
    def test_invalid_id_rejected(self, client, gateway, body):
        response = client.post('/donate/confirm-payment', json=body)

        assert response.status_code == 400
        assert gateway.retrieved == []

    def test_unknown_intent(self, client, gateway):
        response = client.post('/donate/confirm-payment', json={'paymentIntentId': 'pi_nowhere'})

        assert response.status_code == 400

    def test_confirmation_email_sent(self, app, client, gateway):
        from aghosh.container import provide

        gateway.add_payment_intent('pi_mail', donation_metadata())
        client.post('/donate/confirm-payment', json={'paymentIntentId': 'pi_mail'})

        outbox = provide('email_provider').outbox
        assert len(outbox) == 1
        assert outbox[0]['to'] == 'ayesha@example.com'


class TestVerifySession:

    def test_paid_session(self, client, gateway):
        gateway.add_checkout_session('cs_test_abc', donation_metadata(), payment_intent_id='pi_cs1',
                                     amount=1796, currency='usd')

        response = client.get('/donate/verify/cs_test_abc')

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['amount'] == 17.96
        assert data['currency'] == 'USD'
        assert Donation.query.count() == 1

    def test_polling_twice_records_once(self, client, gateway):
        gateway.add_checkout_session('cs_test_abc', donation_metadata(), payment_intent_id='pi_cs2')

        client.get('/donate/verify/cs_test_abc')
        client.get('/donate/verify/cs_test_abc')

        assert Donation.query.count() == 1

    def test_malformed_session_id(self, client, gateway):
        response = client.get('/donate/verify/not_a_session')

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid session ID'
        assert gateway.retrieved == []


class TestStripeInfo:

    def test_status(self, client, gateway):
        assert client.get('/stripe/status').get_json() == {'configured': True}

    def test_publishable_key(self, client, gateway):
        response = client.get('/stripe/publishable-key')

        assert response.status_code == 200
        assert response.get_json() == {'publishableKey': 'pk_test_123'}

    def test_publishable_key_when_unconfigured(self, client, gateway):
        gateway.configured = False

        response = client.get('/stripe/publishable-key')

        assert response.status_code == 503
        assert 'Bank Transfer' in response.get_json()['message']


class TestSponsorshipPayment:

    def _create(self, client, child, **overrides):
        body = {'childId': child.id, 'sponsorName': 'Omar Farooq', 'sponsorEmail': 'omar@example.com'}
        body.update(overrides)
        return client.post('/stripe/create-sponsorship-intent', json=body)

    def test_full_card_flow(self, client, gateway, child):
        created = self._create(client, child)
        assert created.status_code == 200
        data = created.get_json()

        sponsorship = db.session.get(Sponsorship, data['sponsorshipId'])
        assert sponsorship.payment_status == 'pending'
        assert sponsorship.payment_method == 'card'
        assert sponsorship.monthly_amount == 15000
        assert sponsorship.stripe_payment_intent_id == data['paymentIntentId']
        assert db.session.get(Child, child.id).is_sponsored is True

        intent = gateway.payments[data['paymentIntentId']]
        gateway.add_payment_intent(intent.external_id, intent.metadata, amount=intent.amount,
                                   receipt_url='https://pay.stripe.com/receipts/sp')

        confirmed = client.post(f"/sponsorships/{data['sponsorshipId']}/payment",
                                json={'paymentIntentId': data['paymentIntentId']})

        assert confirmed.status_code == 200
        body = confirmed.get_json()
        assert body['success'] is True
        assert body['sponsorship']['paymentStatus'] == 'completed'
        assert body['sponsorship']['stripeReceiptUrl'] == 'https://pay.stripe.com/receipts/sp'
        assert body['sponsorship']['localReceiptNumber'].startswith('AGH-')

    def test_confirm_before_payment_leaves_pending(self, client, gateway, child):
        data = self._create(client, child).get_json()

        response = client.post(f"/sponsorships/{data['sponsorshipId']}/payment",
                               json={'paymentIntentId': data['paymentIntentId']})

        assert response.get_json()['success'] is False
        assert db.session.get(Sponsorship, data['sponsorshipId']).payment_status == 'pending'

    def test_custom_amount(self, client, gateway, child):
        data = self._create(client, child, amount=20000).get_json()

        assert db.session.get(Sponsorship, data['sponsorshipId']).monthly_amount == 20000

    def test_amount_above_maximum_rejected(self, client, gateway, child):
        response = self._create(client, child, amount=100001)

        assert response.status_code == 400
        assert 'amount' in response.get_json()['errors']
        assert gateway.created == []
        assert Sponsorship.query.count() == 0

    def test_amount_at_maximum_accepted(self, client, gateway, child):
        data = self._create(client, child, amount=100000).get_json()

        assert db.session.get(Sponsorship, data['sponsorshipId']).monthly_amount == 100000

    def test_unknown_child(self, client, gateway, child):
        response = self._create(client, child, childId=9999)

        assert response.status_code == 400
        assert Sponsorship.query.count() == 0

    def test_missing_fields(self, client, gateway, child):
        response = self._create(client, child, sponsorEmail=None)

        assert response.status_code == 400
        assert 'sponsor_email' in response.get_json()['errors']

    def test_unconfigured_gateway(self, client, gateway, child):
        gateway.configured = False

        response = self._create(client, child)

        assert response.status_code == 503
        assert Sponsorship.query.count() == 0

    def test_unknown_sponsorship(self, client, gateway):
        response = client.post('/sponsorships/4242/payment', json={'paymentIntentId': 'pi_1'})

        assert response.status_code == 404

    def test_intent_from_other_sponsorship_rejected(self, client, gateway, child):
        first = self._create(client, child).get_json()
        second = self._create(client, child).get_json()
        intent = gateway.payments[second['paymentIntentId']]
        gateway.add_payment_intent(intent.external_id, intent.metadata, amount=intent.amount)

        response = client.post(f"/sponsorships/{first['sponsorshipId']}/payment",
                               json={'paymentIntentId': second['paymentIntentId']})

        assert response.status_code == 400
        assert db.session.get(Sponsorship, first['sponsorshipId']).payment_status == 'pending'


class TestEventDonationPayment:

    def _create(self, client, event, **overrides):
        body = {'eventId': event.id, 'amount': 2500, 'donorName': 'Sana Malik', 'donorEmail': 'sana@example.com'}
        body.update(overrides)
        return client.post('/stripe/create-event-donation-intent', json=body)

    def test_creates_pending_donation_and_intent(self, client, gateway, event):
        response = self._create(client, event, attendanceStatus='maybe')

        assert response.status_code == 200
        data = response.get_json()
        event_donation = db.session.get(EventDonation, data['eventDonationId'])
        assert event_donation.payment_status == 'pending'
        assert event_donation.attendance_status == 'maybe'
        assert event_donation.amount == 2500
        assert event_donation.stripe_payment_intent_id == data['paymentIntentId']
        assert data['receiptNumber'] == event_donation.local_receipt_number
        assert data['receiptNumber'].startswith('EVT-')

        metadata = gateway.payments[data['paymentIntentId']].metadata
        assert metadata['type'] == 'event_donation'
        assert metadata['eventDonationId'] == str(event_donation.id)

    def test_fractional_amount_rounds_half_up(self, client, gateway, event):
        data = self._create(client, event, amount=2500.5).get_json()

        assert db.session.get(EventDonation, data['eventDonationId']).amount == 2501

    @pytest.mark.parametrize('amount', [100, 100001])
    def test_amount_outside_limits_creates_nothing(self, client, gateway, event, amount):
        response = self._create(client, event, amount=amount)

        assert response.status_code == 400
        assert gateway.created == []
        assert EventDonation.query.count() == 0

    def test_inactive_event_rejected(self, client, gateway, event):
        event.is_active = False
        db.session.commit()

        response = self._create(client, event)

        assert response.status_code == 400
        assert EventDonation.query.count() == 0

    def test_missing_fields(self, client, gateway, event):
        response = self._create(client, event, donorEmail=None)

        assert response.status_code == 400
        assert 'donor_email' in response.get_json()['errors']

    def test_unconfigured_gateway(self, client, gateway, event):
        gateway.configured = False

        assert self._create(client, event).status_code == 503
        assert EventDonation.query.count() == 0

    def test_receipt_with_receipt_number(self, client, make_event_donation):
        event_donation = make_event_donation()

        response = client.get(f'/event-donations/{event_donation.id}/receipt',
                              query_string={'receipt': event_donation.local_receipt_number})

        assert response.status_code == 200
        data = response.get_json()
        assert data['isEventDonation'] is True
        assert data['eventTitle'] == 'Iftar Dinner'
        assert data['eventLocation'] == 'Lahore'
        assert data['monthlyAmount'] == 2500
        assert data['sponsorName'] == 'Sana Malik'

    @pytest.mark.parametrize('query', [{}, {'receipt': 'EVT-20260320-9999'}])
    def test_receipt_hidden_without_matching_number(self, client, make_event_donation, query):
        event_donation = make_event_donation()

        response = client.get(f'/event-donations/{event_donation.id}/receipt', query_string=query)

        assert response.status_code == 404

    def test_receipt_visible_to_admin(self, client, admin_user, make_event_donation):
        event_donation = make_event_donation()
        login(client, admin_user)

        assert client.get(f'/event-donations/{event_donation.id}/receipt').status_code == 200

    def test_unknown_receipt(self, client):
        assert client.get('/event-donations/4242/receipt').status_code == 404


def test_health(client, gateway):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok', 'database': 'ok', 'stripeConfigured': True}


def test_unknown_route_is_json_404(client):
    response = client.get('/nowhere')

    assert response.status_code == 404
    assert response.get_json() == {'message': 'Not found'}
