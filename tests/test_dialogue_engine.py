# tests/test_dialogue_engine.py
"""Tests for a single onboarding turn (DialogueEngine.handle_turn)."""

import asyncio
from unittest.mock import AsyncMock

from conftest import ScriptedGateway, extraction

from onboard_bot.domain.i18n import t
from onboard_bot.domain.models.session import Channel, SessionStatus
from onboard_bot.domain.services.dialogue_engine import DialogueEngine
from onboard_bot.domain.steps import COMPLETE, CONFIRM_DETAILS
from onboard_bot.domain.collaborators import ExtractionGatewayError

WA_ID = "14155550123"


def _engine(collab, gateway, **kwargs):
    return DialogueEngine(
        collab.store,
        gateway,
        collab.orchestrator(),
        directory=collab.directory,
        **kwargs,
    )


def _session(collab, event_loop, step="name", answers=None, **kwargs):
    return event_loop.run_until_complete(
        collab.store.create_session(WA_ID, Channel.WHATSAPP, current_step=step, answers=answers, **kwargs)
    )


class SlowGateway:
    async def extract(self, system_prompt, history, message):
        await asyncio.sleep(1)
        return extraction("late")


# ── regular slots ───────────────────────────────────────────────


def test_first_answer_advances_to_next_slot(collab, event_loop):
    """A fresh subject answering 'John' records the name and moves on."""
    session = _session(collab, event_loop)
    gateway = ScriptedGateway(
        extraction("Nice to meet you, John! What's your business called?", {"name": "John"}, "business_name")
    )
    engine = _engine(collab, gateway)

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.path == "continue"
    assert turn.replies == ["Nice to meet you, John! What's your business called?"]
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.answers == {"name": "John"}
    assert stored.current_step == "business_name"
    assert collab.directory.contacts[WA_ID].name == "John"
    assert gateway.calls[0]["message"] == "John"


def test_missing_next_step_uses_default_successor(collab, event_loop):
    session = _session(collab, event_loop, step="website", answers={"name": "John"})
    engine = _engine(collab, ScriptedGateway(extraction("Got it!", {"website": "acme.com"})))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "acme.com"))

    assert turn.session.current_step == "business_description"
    assert turn.session.answers == {"name": "John", "website": "acme.com"}


def test_missing_message_falls_back_to_continue_text(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(collab, ScriptedGateway(extraction("", {"name": "John"}, "business_name")))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.replies == [t("CONTINUE", "en")]


def test_skipped_answer_is_recorded_and_dialogue_moves_on(collab, event_loop):
    session = _session(collab, event_loop, step="pricing")
    engine = _engine(collab, ScriptedGateway(extraction("No problem!", {"pricing": "skipped"}, "avg_transaction_value")))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "rather not say"))

    assert turn.session.answers["pricing"] == "skipped"
    assert turn.session.current_step == "avg_transaction_value"


def test_multiple_answers_in_one_message(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(
        collab,
        ScriptedGateway(extraction("Thanks!", {"name": "John", "business_name": "Acme", "shoe_size": "44"}, "website")),
    )

    turn = event_loop.run_until_complete(engine.handle_turn(session, "I'm John from Acme"))

    assert turn.session.answers == {"name": "John", "business_name": "Acme"}
    assert turn.session.current_step == "website"
    assert sorted(turn.extracted) == ["business_name", "name"]


# ── soft failures ───────────────────────────────────────────────


def test_non_json_output_asks_for_clarification_without_mutation(collab, event_loop):
    session = _session(collab, event_loop, step="website", answers={"name": "John"})
    engine = _engine(collab, ScriptedGateway("Sorry, I can't help with that."))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "acme.com"))

    assert turn.path == "clarify"
    assert turn.replies == [t("CLARIFY", "en")]
    assert not turn.mutated
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.answers == {"name": "John"}
    assert stored.current_step == "website"
    assert stored.updated_at == session.updated_at


def test_unknown_next_step_is_a_clarification(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(collab, ScriptedGateway(extraction("hi", {"name": "John"}, "shoe_size")))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.path == "clarify"
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.answers == {}


def test_gateway_error_returns_apology_without_mutation(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(collab, ScriptedGateway(ExtractionGatewayError("rate limited", 429)))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.path == "hiccup"
    assert turn.replies == [t("HICCUP", "en")]
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.current_step == "name"


def test_unexpected_gateway_failure_returns_apology_without_mutation(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(collab, ScriptedGateway(RuntimeError("boom")))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.path == "hiccup"
    assert turn.replies == [t("HICCUP", "en")]
    assert turn.session == session
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.current_step == "name"
    assert stored.answers == {}


def test_store_failure_returns_apology(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(collab, ScriptedGateway(extraction("Nice to meet you!", {"name": "John"}, "business_name")))
    collab.store.update_session = AsyncMock(side_effect=RuntimeError("database is gone"))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.path == "hiccup"
    assert turn.replies == [t("HICCUP", "en")]
    assert turn.session.current_step == "name"


def test_completion_store_failure_returns_apology_without_provisioning(collab, event_loop, full_answers):
    session = _session(collab, event_loop, step="additional_info", answers=dict(full_answers))
    engine = _engine(collab, ScriptedGateway(extraction("All done!", {}, COMPLETE)))
    collab.store.complete_session = AsyncMock(side_effect=RuntimeError("database is gone"))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "nothing else"))

    assert turn.path == "hiccup"
    assert turn.provisioning is None
    assert collab.directory.clients == {}
    assert collab.invitations.calls == []


def test_gateway_timeout_asks_for_clarification(collab, event_loop):
    session = _session(collab, event_loop)
    engine = _engine(collab, SlowGateway(), extraction_timeout=0.01)

    turn = event_loop.run_until_complete(engine.handle_turn(session, "John"))

    assert turn.path == "clarify"
    assert turn.replies == [t("CLARIFY", "en")]
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.answers == {}


def test_replies_follow_session_language(collab, event_loop):
    session = _session(collab, event_loop, language="es")
    engine = _engine(collab, ScriptedGateway("???"))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "hola"))

    assert turn.replies == [t("CLARIFY", "es")]


# ── confirmation loop ───────────────────────────────────────────


def test_correction_keeps_session_in_confirmation(collab, event_loop):
    session = _session(
        collab, event_loop, step=CONFIRM_DETAILS,
        answers={"name": "John", "business_name": "Acne", "website": "acme.com"},
    )
    engine = _engine(
        collab,
        ScriptedGateway(extraction("Updated! Business: Acme. Is everything correct now?", {"business_name": "Acme"}, CONFIRM_DETAILS)),
    )

    turn = event_loop.run_until_complete(engine.handle_turn(session, "that's wrong, my business name is Acme"))

    assert turn.path == "continue"
    assert turn.session.current_step == CONFIRM_DETAILS
    assert turn.session.answers["business_name"] == "Acme"
    assert collab.invitations.calls == []


def test_confirmation_without_next_step_stays_in_loop(collab, event_loop):
    session = _session(collab, event_loop, step=CONFIRM_DETAILS, answers={"name": "John", "website": "acme.com"})
    engine = _engine(collab, ScriptedGateway(extraction("Anything else to change?", {})))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "hmm"))

    assert turn.session.current_step == CONFIRM_DETAILS


def test_confirming_details_sends_early_invitation_and_next_steps(collab, event_loop):
    session = _session(
        collab, event_loop, step=CONFIRM_DETAILS,
        answers={"name": "John", "business_name": "Acme", "website": "acme.com", "email": "john@acme.com"},
    )
    engine = _engine(collab, ScriptedGateway(extraction("", {}, "business_description")))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "yes, correct"))

    assert turn.path == "confirm_exit"
    assert len(turn.replies) == 2
    assert turn.replies[0] == t("CONFIRMED", "en")
    assert "https://leadsie.example/inv-1" in turn.replies[1]
    assert collab.invitations.calls[0]["platforms"] == ["facebook", "google"]
    assert collab.invitations.calls[0]["contact"] == "john@acme.com"

    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.current_step == "business_description"
    assert stored.invite_url == "https://leadsie.example/inv-1"
    assert stored.provisioning["invite_platforms"] == ["facebook", "google"]


def test_confirmation_exit_survives_invitation_failure(collab, event_loop):
    session = _session(collab, event_loop, step=CONFIRM_DETAILS, answers={"name": "John", "website": "acme.com"})
    collab.invitations.create_invitation = AsyncMock(side_effect=RuntimeError("leadsie down"))
    engine = _engine(collab, ScriptedGateway(extraction("Great!", {}, "business_name")))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "yes"))

    assert turn.path == "confirm_exit"
    assert turn.replies[0] == "Great!"
    assert "leadsie" not in turn.replies[1]
    stored = event_loop.run_until_complete(collab.store.get_active_session(WA_ID))
    assert stored.invite_url is None
    assert stored.current_step == "business_name"


# ── completion ──────────────────────────────────────────────────


def test_completion_runs_provisioning_once(collab, event_loop, full_answers):
    answers = {k: v for k, v in full_answers.items() if k != "additional_info"}
    session = _session(collab, event_loop, step="additional_info", answers=answers)
    engine = _engine(collab, ScriptedGateway(extraction("All done!", {"additional_info": "Peak season is May"}, COMPLETE)))
    interim = AsyncMock()

    turn = event_loop.run_until_complete(engine.handle_turn(session, "Peak season is May", send_interim=interim))

    assert turn.path == "complete"
    interim.assert_awaited_once_with(t("WORKING_ON_IT", "en"))
    assert turn.provisioning is not None
    assert turn.provisioning.result == "success"
    assert turn.replies == [turn.provisioning.message]
    assert turn.session.status == SessionStatus.COMPLETED

    latest = event_loop.run_until_complete(collab.store.get_latest_session(WA_ID))
    assert latest.status == SessionStatus.COMPLETED
    assert latest.current_step == COMPLETE
    assert latest.answers["additional_info"] == "Peak season is May"
    assert latest.provisioning["result"] == "success"
    assert latest.client_id == turn.provisioning.client_id
    assert len(collab.directory.clients) == 1


def test_completion_without_interim_callback_prepends_notice(collab, event_loop, full_answers):
    session = _session(collab, event_loop, step="additional_info", answers=full_answers)
    engine = _engine(collab, ScriptedGateway(extraction("Done", {}, COMPLETE)))

    turn = event_loop.run_until_complete(engine.handle_turn(session, "that's all"))

    assert turn.replies[0] == t("WORKING_ON_IT", "en")
    assert len(turn.replies) == 2


def test_second_completion_does_not_provision_again(collab, event_loop, full_answers):
    session = _session(collab, event_loop, step="additional_info", answers=full_answers)
    engine = _engine(
        collab,
        ScriptedGateway(extraction("Done", {}, COMPLETE), extraction("Done", {}, COMPLETE)),
    )

    first = event_loop.run_until_complete(engine.handle_turn(session, "that's all"))
    # A stale copy of the same session racing in after the first one won
    second = event_loop.run_until_complete(engine.handle_turn(session, "that's all"))

    assert first.path == "complete"
    assert second.path == "already_completed"
    assert second.replies == [t("ALREADY_ONBOARDED", "en")]
    assert len(collab.directory.clients) == 1
    assert collab.notifier.notify.await_count == 1


def test_completed_session_is_not_processed(collab, event_loop):
    session = _session(collab, event_loop)
    event_loop.run_until_complete(collab.store.complete_session(session.id))
    completed = event_loop.run_until_complete(collab.store.get_latest_session(WA_ID))
    gateway = ScriptedGateway()
    engine = _engine(collab, gateway)

    turn = event_loop.run_until_complete(engine.handle_turn(completed, "hello again"))

    assert turn.path == "already_completed"
    assert gateway.calls == []
