import pytest

from lingoecho.exceptions import SessionNotFoundError
from lingoecho.gate import AuthForm
from lingoecho.shell import Tab


def _register(gate, db, email="siti@example.com"):
	return gate.submit(db, AuthForm(email=email, password="rahasia123", name="Siti", registering=True))


def test_registration_signs_in_and_opens_a_shell(gate, db):
	outcome = _register(gate, db)

	assert outcome.error is None
	assert outcome.identity.display_name == "Siti"
	assert outcome.access_token
	assert len(gate.registry) == 1


def test_failed_login_keeps_the_form_filled(gate, db):
	_register(gate, db)
	outcome = gate.submit(db, AuthForm(email="siti@example.com", password="salah-salah", name=None))

	assert outcome.identity is None
	assert outcome.error_code == "invalid-credential"
	assert outcome.error
	assert outcome.email == "siti@example.com"


@pytest.mark.parametrize(
	"form, code",
	[
		(AuthForm(email="not-an-email", password="rahasia123", name="A", registering=True), "invalid-email"),
		(AuthForm(email="a@b.co", password="123", name="A", registering=True), "weak-password"),
		(AuthForm(email="a@b.co", password="rahasia123", name=" ", registering=True), "missing-display-name"),
	],
)
def test_registration_validation(gate, db, form, code):
	assert gate.submit(db, form).error_code == code


def test_duplicate_registration_is_rejected(gate, db):
	_register(gate, db)
	outcome = _register(gate, db)
	assert outcome.error_code == "email-already-in-use"


def test_sign_out_closes_shell_and_detaches_feeds(gate, db, store):
	outcome = _register(gate, db)
	identity, session_id = gate.identities.resolve(db, outcome.access_token)
	shell = gate.shell_for(identity, session_id)
	shell.activate(Tab.PROGRESS)
	assert store.listener_count() > 0

	gate.sign_out(db, session_id)

	assert shell.closed
	assert len(gate.registry) == 0
	assert store.listener_count() == 0


def test_shell_is_restored_for_a_token_from_before(gate, db):
	outcome = _register(gate, db)
	identity, session_id = gate.identities.resolve(db, outcome.access_token)
	gate.registry.close(session_id)

	shell = gate.shell_for(identity, session_id)

	assert shell.identity.id == identity.id
	assert gate.registry.get(session_id) is shell


@pytest.mark.asyncio
async def test_translating_in_a_new_chat_selects_the_new_session(gate, db):
	outcome = _register(gate, db)
	identity, session_id = gate.identities.resolve(db, outcome.access_token)
	shell = gate.shell_for(identity, session_id)

	await shell.translate.submit("Halo")

	assert shell.current_session_id is not None
	assert [s.id for s in shell.sessions] == [shell.current_session_id]
	assert shell.translate.session_id == shell.current_session_id

	shell.new_chat()
	assert shell.current_session_id is None
	assert shell.translate.messages == []


def test_tab_switches_mount_and_unmount_feeds(gate, db, store):
	outcome = _register(gate, db)
	identity, session_id = gate.identities.resolve(db, outcome.access_token)
	shell = gate.shell_for(identity, session_id)
	scores_ref = store.ref("users", identity.id, "quiz_scores")

	shell.activate(Tab.PROGRESS)
	assert store.listener_count(scores_ref) == 1

	shell.activate(Tab.QUIZ)
	assert store.listener_count(scores_ref) == 0


def test_selecting_an_unknown_session_fails(gate, db):
	outcome = _register(gate, db)
	identity, session_id = gate.identities.resolve(db, outcome.access_token)
	shell = gate.shell_for(identity, session_id)

	with pytest.raises(SessionNotFoundError):
		shell.select_session("missing")


def test_selecting_a_malformed_session_id_fails(gate, db):
	outcome = _register(gate, db)
	identity, session_id = gate.identities.resolve(db, outcome.access_token)
	shell = gate.shell_for(identity, session_id)

	with pytest.raises(SessionNotFoundError):
		shell.select_session("a/b")
