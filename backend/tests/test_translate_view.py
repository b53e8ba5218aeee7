import asyncio

import pytest

from lingoecho.exceptions import GenerationError, PersistenceError, ViewBusyError
from lingoecho.records import Message
from lingoecho.views.translate import TranslateState, TranslateView


def _view(persistence, generator, created=None):
	return TranslateView("u1", persistence, generator, on_session_created=created)


@pytest.mark.asyncio
async def test_first_translation_creates_session_and_follows_it(persistence, generator):
	view = _view(persistence, generator)

	assert await view.submit("Saya suka makan nasi goreng setiap hari", "formal")

	assert view.state is TranslateState.IDLE
	assert view.input == ""
	assert view.session_id is not None
	assert [m.translated_text for m in view.messages] == ["EN Saya suka makan nasi goreng setiap hari"]
	assert view.messages[0].mode == "formal"
	assert generator.calls == [("translation", "Saya suka makan nasi goreng setiap hari", "formal")]


@pytest.mark.asyncio
async def test_session_created_callback_is_used_when_given(persistence, generator):
	created = []
	view = _view(persistence, generator, created=created.append)

	await view.submit("Halo")

	assert len(created) == 1
	# The owner decides which session to open
	assert view.session_id is None


@pytest.mark.asyncio
async def test_follow_up_messages_arrive_through_the_feed(persistence, generator):
	view = _view(persistence, generator)
	await view.submit("satu")
	sid = view.session_id
	await view.submit("dua")

	assert view.session_id == sid
	assert [m.source_text for m in view.messages] == ["satu", "dua"]


@pytest.mark.asyncio
async def test_generation_failure_restores_input_and_appends_nothing(store, persistence, generator):
	generator.translations.append(GenerationError("model unavailable"))
	view = _view(persistence, generator)
	view.set_draft("Apa kabar?", "casual")

	assert not await view.submit()

	assert view.input == "Apa kabar?"
	assert view.error == "model unavailable"
	assert view.state is TranslateState.IDLE
	assert view.messages == []
	assert store.children(store.ref("users", "u1", "sessions")) == {}


@pytest.mark.asyncio
async def test_save_failure_restores_input_and_sets_notice(persistence, generator, monkeypatch):
	def broken(*args, **kwargs):
		raise PersistenceError("disk full")

	monkeypatch.setattr(persistence, "append_message", broken)
	view = _view(persistence, generator)

	assert not await view.submit("Terima kasih")

	assert view.input == "Terima kasih"
	assert view.notice is not None


@pytest.mark.asyncio
async def test_blank_input_is_not_submitted(persistence, generator):
	view = _view(persistence, generator)
	assert not await view.submit("   ")
	assert generator.calls == []


@pytest.mark.asyncio
async def test_second_submit_while_pending_is_rejected(persistence, generator):
	generator.hold = asyncio.Event()
	view = _view(persistence, generator)

	first = asyncio.create_task(view.submit("Halo"))
	await asyncio.sleep(0)
	assert view.state is TranslateState.PENDING

	with pytest.raises(ViewBusyError):
		await view.submit("Lagi")

	generator.hold.set()
	assert await first
	assert len(view.messages) == 1


@pytest.mark.asyncio
async def test_callbacks_for_a_previous_session_are_ignored(persistence, generator, monkeypatch):
	callbacks = []

	def fake_subscribe(identity_id, session_id, callback):
		callbacks.append(callback)
		return lambda: None

	monkeypatch.setattr(persistence, "subscribe_messages", fake_subscribe)
	view = _view(persistence, generator)
	message = Message(id="m1", timestamp=1, indonesian="Halo", english="Hello", explanation="", mode="casual")

	view.open_session("a")
	view.open_session("b")
	callbacks[0]([message])
	assert view.messages == []

	callbacks[1]([message])
	assert view.messages == [message]


def test_switching_sessions_detaches_previous_feed(store, persistence, generator):
	a = persistence.append_message("u1", None, "A", "A", "", "casual")
	b = persistence.append_message("u1", None, "B", "B", "", "casual")
	view = _view(persistence, generator)

	view.open_session(a)
	view.open_session(b)

	assert store.listener_count(store.ref("users", "u1", "messages", a)) == 0
	assert store.listener_count(store.ref("users", "u1", "messages", b)) == 1
	assert [m.source_text for m in view.messages] == ["B"]

	view.open_session(None)
	assert view.messages == []
	assert store.listener_count() == 0


def test_unknown_mode_is_rejected(persistence, generator):
	view = _view(persistence, generator)
	with pytest.raises(ValueError):
		view.set_draft(mode="shouting")
