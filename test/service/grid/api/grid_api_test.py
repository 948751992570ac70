"""
API tests for the grid engine HTTP surface

Covers the public purchase path (hold → checkout → webhook → content),
the moderator endpoints and the read-only grid views.
Tables are emptied before each test (see `clean_database`).
"""

from typing import Any

from fastapi.testclient import TestClient
import pytest

from src.service.grid.driven_adapter.notification.mock_email_sender import MockEmailSender


BUYER = 'buyer@mail.com'


def _create_hold(
    client: TestClient, top_left: str = '0-0', bottom_right: str = '1-1', contact: str = BUYER
) -> Any:
    return client.post(
        '/api/hold',
        json={'top_left': top_left, 'bottom_right': bottom_right, 'contact': contact},
    )


def _paid_submission(
    client: TestClient, webhook_headers: dict, top_left: str = '0-0', bottom_right: str = '1-1'
) -> dict:
    hold = _create_hold(client, top_left, bottom_right).json()
    checkout = client.post(f'/api/hold/{hold["id"]}/checkout', json={'contact': BUYER}).json()
    response = client.post(
        '/api/payment/webhook',
        json={'checkout_session_id': checkout['session_id'], 'payment_ref': f'pi_{hold["id"]}'},
        headers=webhook_headers,
    )
    assert response.status_code == 200
    assert response.json()['status'] == 'converted'
    return {
        'hold': hold,
        'session_id': checkout['session_id'],
        'submission_id': response.json()['submission_id'],
    }


def _states(client: TestClient, *cell_ids: str) -> dict:
    return client.post('/api/grid/states', json={'cell_ids': list(cell_ids)}).json()['states']


class TestHoldApi:
    def test_create_hold(self, client: TestClient) -> None:
        response = _create_hold(client)

        assert response.status_code == 201
        data = response.json()
        assert data['top_left'] == '0-0'
        assert data['bottom_right'] == '1-1'
        assert data['cell_count'] == 4
        assert data['price'] == 800
        assert data['currency'] == 'usd'
        assert data['expires_at'] > data['created_at']
        assert _states(client, '0-0', '1-1', '2-2') == {
            '0-0': 'held',
            '1-1': 'held',
            '2-2': 'free',
        }

    def test_overlapping_hold_conflicts_with_blocking_cells(self, client: TestClient) -> None:
        _create_hold(client, '0-0', '1-1')

        response = _create_hold(client, '1-1', '2-2', contact='other@mail.com')

        assert response.status_code == 409
        assert response.json()['blocking_cells'] == ['1-1']

    @pytest.mark.parametrize(
        'top_left,bottom_right',
        [
            ('5-5', '4-4'),  # bottom_right above/left of top_left
            ('0-0', '1000-0'),  # outside the grid
            ('0,0', '1-1'),  # malformed id
        ],
    )
    def test_invalid_rectangle_is_rejected(
        self, client: TestClient, top_left: str, bottom_right: str
    ) -> None:
        response = _create_hold(client, top_left, bottom_right)

        assert response.status_code == 400

    def test_invalid_contact_is_rejected(self, client: TestClient) -> None:
        response = _create_hold(client, contact='not-an-email')

        assert response.status_code == 400

    def test_get_and_cancel_hold(self, client: TestClient) -> None:
        hold = _create_hold(client).json()

        assert client.get(f'/api/hold/{hold["id"]}').json()['id'] == hold['id']

        forbidden = client.delete(f'/api/hold/{hold["id"]}', params={'contact': 'x@mail.com'})
        assert forbidden.status_code == 403

        cancelled = client.delete(f'/api/hold/{hold["id"]}', params={'contact': BUYER})
        assert cancelled.status_code == 200
        assert cancelled.json()['cells_freed'] == 4
        assert client.get(f'/api/hold/{hold["id"]}').status_code == 404
        assert set(_states(client, '0-0', '1-1').values()) == {'free'}

    def test_checkout_prices_server_side(self, client: TestClient) -> None:
        hold = _create_hold(client, '0-0', '0-2').json()

        response = client.post(f'/api/hold/{hold["id"]}/checkout', json={'contact': BUYER})

        assert response.status_code == 200
        data = response.json()
        assert data['amount'] == 600
        assert data['free'] is False
        assert data['checkout_url'].endswith(data['session_id'])
        assert client.get(f'/api/hold/{hold["id"]}').json()['checkout_session_id'] == (
            data['session_id']
        )

    def test_checkout_with_promo_code_is_free(self, client: TestClient) -> None:
        hold = _create_hold(client).json()

        response = client.post(
            f'/api/hold/{hold["id"]}/checkout', json={'contact': BUYER, 'promo_code': 'GRIDFREE'}
        )

        assert response.status_code == 200
        assert response.json()['free'] is True
        assert response.json()['amount'] == 0
        assert response.json()['submission_id'] is not None
        assert set(_states(client, '0-0', '1-1').values()) == {'occupied'}

    def test_checkout_of_cancelled_hold_is_stale(self, client: TestClient) -> None:
        hold = _create_hold(client).json()
        client.delete(f'/api/hold/{hold["id"]}')

        response = client.post(f'/api/hold/{hold["id"]}/checkout', json={'contact': BUYER})

        assert response.status_code == 409


class TestPaymentWebhook:
    def test_wrong_secret_is_unauthorized(self, client: TestClient) -> None:
        response = client.post(
            '/api/payment/webhook',
            json={'checkout_session_id': 'cs_x', 'payment_ref': 'pi_x'},
            headers={'X-Webhook-Secret': 'wrong'},
        )

        assert response.status_code == 401

    def test_payment_occupies_cells_and_duplicates_are_acknowledged(
        self, client: TestClient, webhook_headers: dict
    ) -> None:
        hold = _create_hold(client).json()
        checkout = client.post(f'/api/hold/{hold["id"]}/checkout', json={'contact': BUYER}).json()
        event = {'checkout_session_id': checkout['session_id'], 'payment_ref': 'pi_api_1'}

        first = client.post('/api/payment/webhook', json=event, headers=webhook_headers)
        second = client.post('/api/payment/webhook', json=event, headers=webhook_headers)

        assert first.json()['status'] == 'converted'
        assert second.status_code == 200
        assert second.json()['submission_id'] == first.json()['submission_id']
        assert set(_states(client, '0-0', '0-1', '1-0', '1-1').values()) == {'occupied'}
        assert client.get(f'/api/hold/{hold["id"]}').status_code == 404

    def test_unknown_session_is_ignored(self, client: TestClient, webhook_headers: dict) -> None:
        response = client.post(
            '/api/payment/webhook',
            json={'checkout_session_id': 'cs_unknown', 'payment_ref': 'pi_unknown'},
            headers=webhook_headers,
        )

        assert response.status_code == 200
        assert response.json() == {'status': 'ignored', 'submission_id': None}


class TestSubmissionApi:
    def test_upload_content_then_read_submission(
        self, client: TestClient, webhook_headers: dict
    ) -> None:
        paid = _paid_submission(client, webhook_headers)
        submission_id = paid['submission_id']

        response = client.post(
            f'/api/submission/{submission_id}/content',
            json={
                'contact': BUYER,
                'video_url': 'https://cdn.test/v.mp4',
                'duration_seconds': 25,
            },
        )

        assert response.status_code == 200
        assert response.json()['status'] == 'under_review'
        data = client.get(f'/api/submission/{submission_id}', params={'contact': BUYER}).json()
        assert data['video_url'] == 'https://cdn.test/v.mp4'
        assert data['cell_count'] == 4

    def test_video_longer_than_allowed_is_rejected(
        self, client: TestClient, webhook_headers: dict
    ) -> None:
        """
        Given: a 4-cell submission (limit 30s)
        When: a 31s video is attached
        Then: 400 and the submission keeps waiting for an upload
        """
        submission_id = _paid_submission(client, webhook_headers)['submission_id']

        response = client.post(
            f'/api/submission/{submission_id}/content',
            json={'contact': BUYER, 'video_url': 'https://cdn.test/v.mp4', 'duration_seconds': 31},
        )

        assert response.status_code == 400
        data = client.get(f'/api/submission/{submission_id}', params={'contact': BUYER}).json()
        assert data['status'] == 'awaiting_upload'

    def test_only_the_purchaser_can_upload(self, client: TestClient, webhook_headers: dict) -> None:
        submission_id = _paid_submission(client, webhook_headers)['submission_id']

        response = client.post(
            f'/api/submission/{submission_id}/content',
            json={
                'contact': 'intruder@mail.com',
                'video_url': 'https://cdn.test/v.mp4',
                'duration_seconds': 5,
            },
        )

        assert response.status_code == 403

    def test_reading_a_submission_requires_the_purchaser(
        self, client: TestClient, webhook_headers: dict
    ) -> None:
        submission_id = _paid_submission(client, webhook_headers)['submission_id']

        anonymous = client.get(f'/api/submission/{submission_id}')
        intruder = client.get(
            f'/api/submission/{submission_id}', params={'contact': 'intruder@mail.com'}
        )

        assert anonymous.status_code == 403
        assert intruder.status_code == 403
        assert 'payment_ref' not in anonymous.text

    def test_find_submission_by_checkout_session(
        self, client: TestClient, webhook_headers: dict
    ) -> None:
        """
        Given: a paid checkout (the hold no longer exists)
        When: the buyer returns from the payment page with the session id
        Then: the submission is found and can receive its content
        """
        paid = _paid_submission(client, webhook_headers)
        assert client.get(f'/api/hold/{paid["hold"]["id"]}').status_code == 404

        response = client.get(
            f'/api/submission/by-session/{paid["session_id"]}', params={'contact': BUYER}
        )

        assert response.status_code == 200
        assert response.json()['id'] == paid['submission_id']
        assert response.json()['status'] == 'awaiting_upload'
        upload = client.post(
            f'/api/submission/{response.json()["id"]}/content',
            json={'contact': BUYER, 'video_url': 'https://cdn.test/v.mp4', 'duration_seconds': 5},
        )
        assert upload.status_code == 200

    def test_session_lookup_checks_owner_and_existence(
        self, client: TestClient, webhook_headers: dict
    ) -> None:
        paid = _paid_submission(client, webhook_headers)

        intruder = client.get(
            f'/api/submission/by-session/{paid["session_id"]}',
            params={'contact': 'intruder@mail.com'},
        )
        unknown = client.get('/api/submission/by-session/cs_unknown', params={'contact': BUYER})

        assert intruder.status_code == 403
        assert unknown.status_code == 404


class TestAdminApi:
    def test_moderation_requires_admin_token(
        self, client: TestClient, webhook_headers: dict, api_container: Any
    ) -> None:
        submission_id = _paid_submission(client, webhook_headers)['submission_id']
        buyer_token = api_container.admin_jwt_auth().create_admin_token(
            subject=BUYER, role='buyer'
        )

        anonymous = client.post(f'/api/admin/submission/{submission_id}/reject', json={})
        garbage = client.post(
            f'/api/admin/submission/{submission_id}/reject',
            json={},
            headers={'Authorization': 'Bearer garbage'},
        )
        buyer = client.post(
            f'/api/admin/submission/{submission_id}/reject',
            json={},
            headers={'Authorization': f'Bearer {buyer_token}'},
        )

        assert anonymous.status_code == 401
        assert garbage.status_code == 401
        assert buyer.status_code == 403
        assert set(_states(client, '0-0', '1-1').values()) == {'occupied'}

    def test_reject_frees_cells_refunds_and_emails(
        self,
        client: TestClient,
        webhook_headers: dict,
        admin_headers: dict,
        api_container: Any,
    ) -> None:
        submission_id = _paid_submission(client, webhook_headers)['submission_id']
        refunds_before = len(api_container.refund_gateway().refunds)

        response = client.post(
            f'/api/admin/submission/{submission_id}/reject',
            json={'notes': 'off-topic'},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()['status'] == 'rejected'
        assert response.json()['admin_notes'] == 'off-topic'
        assert set(_states(client, '0-0', '0-1', '1-0', '1-1').values()) == {'free'}
        refunds = api_container.refund_gateway().refunds
        assert len(refunds) == refunds_before + 1
        assert refunds[-1]['amount'] == 800
        sender: MockEmailSender = api_container.notification_sender()
        assert sender.sent_emails[-1]['subject'] == 'Submission Rejected'

    def test_approve_then_remove(
        self, client: TestClient, webhook_headers: dict, admin_headers: dict
    ) -> None:
        submission_id = _paid_submission(client, webhook_headers)['submission_id']
        client.post(
            f'/api/submission/{submission_id}/content',
            json={'contact': BUYER, 'video_url': 'https://cdn.test/v.mp4', 'duration_seconds': 9},
        )

        approved = client.post(
            f'/api/admin/submission/{submission_id}/approve', json={}, headers=admin_headers
        )
        occupancy = client.get('/api/grid/occupancy').json()
        removed = client.post(
            f'/api/admin/submission/{submission_id}/remove', json={}, headers=admin_headers
        )

        assert approved.json()['status'] == 'approved'
        assert [o['submission_id'] for o in occupancy] == [submission_id]
        assert occupancy[0]['video_url'] == 'https://cdn.test/v.mp4'
        assert removed.json()['status'] == 'removed'
        assert client.get('/api/grid/occupancy').json() == []
        assert set(_states(client, '0-0', '1-1').values()) == {'free'}

    def test_approving_before_upload_conflicts(
        self, client: TestClient, webhook_headers: dict, admin_headers: dict
    ) -> None:
        submission_id = _paid_submission(client, webhook_headers)['submission_id']

        response = client.post(
            f'/api/admin/submission/{submission_id}/approve', json={}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_manual_reap_with_nothing_expired(
        self, client: TestClient, admin_headers: dict
    ) -> None:
        _create_hold(client)

        response = client.post('/api/admin/reap', headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {'holds_reaped': 0, 'cells_freed': 0, 'orphaned_cells_freed': 0}
        assert set(_states(client, '0-0', '1-1').values()) == {'held'}


class TestGridViews:
    def test_snapshot_and_changes(self, client: TestClient) -> None:
        before = client.get('/api/grid/snapshot').json()
        _create_hold(client, '3-3', '3-4')

        snapshot = client.get('/api/grid/snapshot').json()
        changes = client.get('/api/grid/changes', params={'since': before['seq']}).json()

        assert snapshot['cells'] == {'3-3': 'held', '3-4': 'held'}
        assert snapshot['seq'] == before['seq'] + 2
        assert changes['resync_required'] is False
        assert [(d['cell_id'], d['state']) for d in changes['deltas']] == [
            ('3-3', 'held'),
            ('3-4', 'held'),
        ]

    def test_changes_from_the_future_require_resync(self, client: TestClient) -> None:
        seq = client.get('/api/grid/snapshot').json()['seq']

        response = client.get('/api/grid/changes', params={'since': seq + 1000})

        assert response.json()['resync_required'] is True

    def test_states_rejects_malformed_ids(self, client: TestClient) -> None:
        response = client.post('/api/grid/states', json={'cell_ids': ['0-0', 'garbage']})

        assert response.status_code == 400

    def test_health_and_metrics(self, client: TestClient) -> None:
        _create_hold(client, '9-9', '9-9')

        health = client.get('/health')
        metrics = client.get('/metrics')

        assert health.status_code == 200
        assert health.json()['status'] == 'healthy'
        assert metrics.status_code == 200
        assert 'grid_hold_requests_total' in metrics.text
