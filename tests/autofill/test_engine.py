"""Tests for the auto-fill engine against hand-built pages."""

from __future__ import annotations

import pytest
from conftest import CONTACT_FORM

from page_bridge.autofill import auto_fill, candidate_fields, engine, resolve_label
from page_bridge.dom.document import DomEvent, MutationRecord, PageDocument
from page_bridge.models import FilledField


@pytest.fixture
def contact_form() -> PageDocument:
    return PageDocument(CONTACT_FORM, 'https://jobs.example.com/apply')


class TestEligibility:
    def test_phone_placeholder_is_filled(self) -> None:
        document = PageDocument('<body><input type="tel" name="m" placeholder="Your phone"></body>')

        filled = auto_fill(document, '13812345678')

        assert filled == [FilledField(field='m', value='13812345678', type='tel')]
        field = document.select_one('input')
        assert field is not None
        assert field['value'] == '13812345678'

    def test_name_placeholder_is_not_filled_with_phone(self) -> None:
        document = PageDocument('<body><input type="text" placeholder="Your name"></body>')

        assert auto_fill(document, '13812345678') == []
        field = document.select_one('input')
        assert field is not None
        assert not field.has_attr('value')

    def test_unclassified_value_writes_nothing(self, contact_form: PageDocument) -> None:
        before = contact_form.serialize()

        assert auto_fill(contact_form, 'random!!text##') == []
        assert contact_form.serialize() == before

    @pytest.mark.parametrize(
        'value, expected',
        [
            ('13812345678', [('mobile', 'tel')]),
            ('Alice Smith', [('applicant', 'text')]),
            ('a@b.com', [('contact_email', 'email')]),
            ('北京市朝阳区建国路', [('home_address', 'textarea')]),
        ],
    )
    def test_contact_form(self, contact_form: PageDocument, value: str, expected: list[tuple[str, str]]) -> None:
        filled = auto_fill(contact_form, value)

        assert [(f.field, f.type) for f in filled] == expected
        assert all(f.value == value for f in filled)

    def test_same_value_fills_every_eligible_field(self) -> None:
        document = PageDocument(
            '<body><input name="phone"><input name="backup_tel"><input name="email"></body>'
        )

        filled = auto_fill(document, '13812345678')

        assert [f.field for f in filled] == ['phone', 'backup_tel']

    def test_unnamed_field_is_reported_by_id_then_unknown(self) -> None:
        document = PageDocument('<body><input id="tel-1"><input placeholder="手机"></body>')

        assert [f.field for f in auto_fill(document, '13812345678')] == ['tel-1', 'unknown']


class TestCandidates:
    def test_only_free_text_kinds(self) -> None:
        document = PageDocument(
            '<body>'
            '<input name="a"><input type="TEXT" name="b"><input type="email" name="c"><input type="tel" name="d">'
            '<input type="hidden" name="e"><input type="password" name="f"><input type="checkbox" name="g">'
            '<textarea name="h"></textarea><select name="i"></select>'
            '</body>'
        )

        assert [field['name'] for field in candidate_fields(document)] == ['a', 'b', 'c', 'd', 'h']

    def test_hidden_phone_field_is_never_filled(self, contact_form: PageDocument) -> None:
        auto_fill(contact_form, '13812345678')

        hidden = contact_form.select_one('input[name=phone_hidden]')
        assert hidden is not None
        assert not hidden.has_attr('value')


class TestLabels:
    def test_for_association(self, contact_form: PageDocument) -> None:
        field = contact_form.select_one('#applicant')
        assert field is not None

        assert resolve_label(contact_form, field) == '姓名'

    def test_enclosing_label(self) -> None:
        document = PageDocument('<body><label>电话 <input name="x"></label></body>')
        field = document.select_one('input')
        assert field is not None

        assert resolve_label(document, field).strip() == '电话'
        assert [f.field for f in auto_fill(document, '13812345678')] == ['x']

    def test_preceding_sibling_label(self) -> None:
        document = PageDocument('<body><div><label>手机</label><input name="y"></div></body>')
        field = document.select_one('input')
        assert field is not None

        assert resolve_label(document, field) == '手机'

    def test_for_association_wins_over_enclosing(self) -> None:
        document = PageDocument(
            '<body><label for="z">Email</label><label>Phone <input id="z"></label></body>'
        )
        field = document.select_one('input')
        assert field is not None

        assert resolve_label(document, field) == 'Email'

    def test_no_label(self) -> None:
        document = PageDocument('<body><span>Phone</span><input name="q"></body>')
        field = document.select_one('input')
        assert field is not None

        assert resolve_label(document, field) == ''


class TestNotifications:
    def test_input_and_change_bubble_to_form(self, contact_form: PageDocument) -> None:
        form = contact_form.select_one('form')
        assert form is not None
        events: list[DomEvent] = []
        contact_form.add_event_listener(form, 'input', events.append)
        contact_form.add_event_listener(form, 'change', events.append)

        auto_fill(contact_form, '13812345678')

        assert [(e.type, e.target['name']) for e in events] == [('input', 'mobile'), ('change', 'mobile')]

    def test_textarea_write_is_a_child_mutation(self, contact_form: PageDocument) -> None:
        records: list[MutationRecord] = []
        contact_form.observe(records.append)

        auto_fill(contact_form, '北京市朝阳区建国路')

        textarea = contact_form.select_one('textarea')
        assert textarea is not None
        assert textarea.get_text() == '北京市朝阳区建国路'
        assert [r.type for r in records] == ['childList']


class TestFailureIsolation:
    def test_bad_field_is_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        document = PageDocument('<body><input name="phone"><input name="tel"></body>')
        real_write = engine._write
        calls: list[str] = []

        def flaky_write(doc: PageDocument, element, value: str) -> None:
            calls.append(element['name'])
            if element['name'] == 'phone':
                raise RuntimeError('malformed element')
            real_write(doc, element, value)

        monkeypatch.setattr(engine, '_write', flaky_write)

        filled = auto_fill(document, '13812345678')

        assert calls == ['phone', 'tel']
        assert [f.field for f in filled] == ['tel']
