"""Tests for the HTTP bridge, driven through FastAPI's TestClient."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from conftest import CONTACT_FORM
from fastapi.testclient import TestClient

from page_bridge.config import RuntimeConfig
from page_bridge.http_bridge import create_app
from page_bridge.runtime import Extension
from page_bridge.settings import MemorySettingsStore


@pytest.fixture
def client(runtime_config: RuntimeConfig) -> Iterator[TestClient]:
    extension = Extension(runtime_config, settings_store=MemorySettingsStore())
    with TestClient(create_app(extension)) as client:
        yield client


def open_contact_form(client: TestClient) -> int:
    response = client.post('/tabs', json={'html': CONTACT_FORM, 'url': 'https://jobs.example.com/apply'})
    assert response.status_code == 201
    return response.json()['tabId']


class TestTabs:
    def test_open_and_close(self, client: TestClient) -> None:
        tab_id = open_contact_form(client)

        assert client.delete(f'/tabs/{tab_id}').json() == {'closed': True}
        assert client.delete(f'/tabs/{tab_id}').status_code == 404

    def test_html_reflects_fill(self, client: TestClient) -> None:
        tab_id = open_contact_form(client)

        client.post(
            '/actions',
            json={'action': 'sendToTab', 'payload': {'action': 'fillForm', 'payload': {'text': 'a@b.com'}}},
        )

        html = client.get(f'/tabs/{tab_id}/html').json()['html']
        assert 'value="a@b.com"' in html

    def test_html_of_missing_tab(self, client: TestClient) -> None:
        assert client.get('/tabs/99/html').status_code == 404

    def test_invalid_body_rejected(self, client: TestClient) -> None:
        assert client.post('/tabs', json={'url': 'https://x.test'}).status_code == 422


class TestActions:
    def test_coordinator_action(self, client: TestClient) -> None:
        response = client.post('/actions', json={'action': 'test'})

        assert response.json() == {'success': True, 'data': {'message': 'Coordinator is working'}, 'error': None}

    def test_fill_form_through_tab(self, client: TestClient) -> None:
        open_contact_form(client)

        response = client.post(
            '/actions',
            json={'action': 'sendToTab', 'payload': {'action': 'fillForm', 'payload': {'text': '13812345678'}}},
        )

        body = response.json()
        assert body['success'] is True
        assert body['data']['filledFields'] == [{'field': 'mobile', 'value': '13812345678', 'type': 'tel'}]

    def test_unknown_action_is_a_failed_result(self, client: TestClient) -> None:
        response = client.post('/actions', json={'action': 'bogus'})

        assert response.status_code == 200
        assert response.json()['success'] is False
        assert response.json()['error'] == 'unknown action: bogus'

    def test_no_active_tab(self, client: TestClient) -> None:
        response = client.post('/actions', json={'action': 'sendToTab', 'payload': {'action': 'extractData'}})

        assert response.json()['error'] == 'LookupError: no active tab'


class TestSettings:
    def test_defaults(self, client: TestClient) -> None:
        settings = client.get('/settings').json()

        assert settings['enablePlugin'] is True
        assert settings['theme'] == 'light'

    def test_update_through_actions(self, client: TestClient) -> None:
        client.post('/actions', json={'action': 'updateSettings', 'payload': {'theme': 'dark'}})

        assert client.get('/settings').json()['theme'] == 'dark'
