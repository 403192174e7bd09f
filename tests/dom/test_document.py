"""Tests for PageDocument events, observers, timers and text access."""

from __future__ import annotations

import asyncio

from page_bridge.dom.document import DomEvent, MutationRecord, PageDocument, format_style, parse_style


class TestText:
    def test_inner_text_skips_scripts_and_blank_leaves(self) -> None:
        document = PageDocument('<body><p> one </p><script>two()</script><div>\n</div><b>three</b></body>')

        assert document.inner_text() == 'one\nthree'

    def test_text_leaves_skip_comments(self) -> None:
        document = PageDocument('<body><!-- note --><p>kept</p></body>')

        assert [str(leaf) for leaf in document.text_leaves()] == ['kept']

    def test_title_defaults_to_empty(self) -> None:
        assert PageDocument('<p>x</p>').title == ''
        assert PageDocument('<title> Hi </title>').title == 'Hi'


class TestEvents:
    def test_bubbling_reaches_ancestors(self) -> None:
        document = PageDocument('<body><form><input name="a"></form></body>')
        form = document.select_one('form')
        field = document.select_one('input')
        assert form is not None
        assert field is not None
        seen: list[tuple[str, str]] = []
        document.add_event_listener(form, 'input', lambda event: seen.append(('form', event.target['name'])))
        document.add_event_listener(field, 'input', lambda event: seen.append(('field', event.type)))

        document.dispatch_event(field, 'input')

        assert seen == [('field', 'input'), ('form', 'a')]

    def test_non_bubbling_event_stays_on_target(self) -> None:
        document = PageDocument('<body><form><input></form></body>')
        form = document.select_one('form')
        field = document.select_one('input')
        assert form is not None
        assert field is not None
        seen: list[DomEvent] = []
        document.add_event_listener(form, 'focus', seen.append)

        document.dispatch_event(field, 'focus', bubbles=False)

        assert seen == []

    def test_raising_listener_does_not_stop_others(self) -> None:
        document = PageDocument('<body><input></body>')
        field = document.select_one('input')
        assert field is not None
        seen: list[str] = []

        def broken(event: DomEvent) -> None:
            raise RuntimeError('listener bug')

        document.add_event_listener(field, 'change', broken)
        document.add_event_listener(field, 'change', lambda event: seen.append(event.type))

        document.dispatch_event(field, 'change')

        assert seen == ['change']

    def test_removed_listener_is_not_called(self) -> None:
        document = PageDocument('<body><input></body>')
        field = document.select_one('input')
        assert field is not None
        seen: list[DomEvent] = []
        listener = seen.append
        document.add_event_listener(field, 'change', listener)
        document.remove_event_listener(field, 'change', listener)

        document.dispatch_event(field, 'change')

        assert seen == []


class TestObservers:
    def test_disconnect_stops_delivery(self) -> None:
        document = PageDocument('<body><p>x</p></body>')
        records: list[MutationRecord] = []
        observer = document.observe(records.append)
        record = MutationRecord(type='childList', target=document.body)

        document.notify_mutation(record)
        observer.disconnect()
        document.notify_mutation(record)

        assert records == [record]
        assert observer.connected is False
        assert document.observer_count == 0


class TestTeardown:
    async def test_releases_everything(self) -> None:
        document = PageDocument('<body><input></body>')
        field = document.select_one('input')
        assert field is not None
        fired: list[str] = []
        document.observe(lambda record: fired.append('observer'))
        document.add_event_listener(field, 'input', lambda event: fired.append('listener'))
        document.call_later(0.01, lambda: fired.append('timer'))

        document.teardown()
        document.teardown()
        document.dispatch_event(field, 'input')
        document.notify_mutation(MutationRecord(type='childList', target=field))
        await asyncio.sleep(0.03)

        assert fired == []
        assert document.closed is True
        assert document.observer_count == 0


class TestTimers:
    async def test_fired_and_cancelled_timers_are_released(self) -> None:
        document = PageDocument('<body></body>')
        fired: list[int] = []

        document.call_later(10, lambda: fired.append(99)).cancel()
        for n in range(5):
            document.call_later(0, lambda n=n: fired.append(n))
        await asyncio.sleep(0.01)

        assert sorted(fired) == [0, 1, 2, 3, 4]
        assert document.pending_timer_count == 0
        assert len(document._timers) == 0


class TestStyleHelpers:
    def test_parse_lowercases_properties(self) -> None:
        assert parse_style('Color: red; ;bad; margin : 0') == {'color': 'red', 'margin': '0'}

    def test_format_drops_empty_values(self) -> None:
        assert format_style({'color': 'red', 'border': ''}) == 'color: red'
