"""
Test Review Session
Paper loading, lazy answer-key loading, evaluation overlay, print, and teardown.
"""
import asyncio

import pytest
from docx import Document

from paper_client.errors import FetchError, PaperNotReadyError
from paper_client.services.review_session import KeyState, ReviewSession, SessionState


def test_start_composes_paper(fake_backend):
    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        assert session.state is SessionState.IDLE
        await session.start()
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.PAPER_LOADED
    assert not session.loading_paper
    assert [s.type for s in session.sections] == ["multiple_choice", "essay"]
    assert session.key_state is KeyState.NOT_FETCHED
    assert fake_backend.count("get_answer_key") == 0


def test_loading_flag_while_fetching(fake_backend):
    async def scenario():
        fake_backend.paper_gate = asyncio.Event()
        session = ReviewSession(fake_backend, "p1")
        task = asyncio.create_task(session.start())
        await asyncio.sleep(0)
        assert session.loading_paper
        assert session.state is SessionState.LOADING_PAPER
        fake_backend.paper_gate.set()
        await task
        assert not session.loading_paper

    asyncio.run(scenario())


def test_paper_failure_is_terminal(fake_backend):
    fake_backend.paper_error = FetchError("Question paper not found", status_code=404)

    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        session.set_evaluation_mode(True)
        await session.wait_for_answer_key()
        with pytest.raises(RuntimeError):
            await session.start()
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.PAPER_ERROR
    assert session.error == "Question paper not found"
    assert session.error_status == 404
    assert session.sections == []
    assert fake_backend.count("get_answer_key") == 0


def test_dismiss_error_keeps_state(fake_backend):
    fake_backend.paper_error = FetchError("boom")

    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        session.dismiss_error()
        return session

    session = asyncio.run(scenario())
    assert session.error is None
    assert session.state is SessionState.PAPER_ERROR


def test_lookups_empty_until_key_resolves(fake_backend):
    async def scenario():
        fake_backend.key_gate = asyncio.Event()
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        sections = session.sections

        session.set_evaluation_mode(True)
        assert session.loading_key
        await asyncio.sleep(0)
        assert all(session.lookup(q.id) is None for s in sections for q in s.questions)

        fake_backend.key_gate.set()
        await session.wait_for_answer_key()

        assert session.key_state is KeyState.LOADED
        assert session.lookup("q1").correct_answer == "a"
        assert session.lookup("q3") is None
        assert session.sections is sections

    asyncio.run(scenario())


def test_key_fetched_once_per_session(fake_backend):
    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        session.set_evaluation_mode(True)
        await session.wait_for_answer_key()

        assert session.toggle_evaluation_mode() is False
        assert session.lookup("q1") is None
        assert session.toggle_evaluation_mode() is True
        await session.wait_for_answer_key()
        assert session.lookup("q1").correct_answer == "a"

    asyncio.run(scenario())
    assert fake_backend.count("get_answer_key") == 1


def test_evaluation_before_paper_loads_fetches_after(fake_backend):
    async def scenario():
        fake_backend.paper_gate = asyncio.Event()
        session = ReviewSession(fake_backend, "p1")
        task = asyncio.create_task(session.start())
        await asyncio.sleep(0)

        session.set_evaluation_mode(True)
        assert fake_backend.count("get_answer_key") == 0

        fake_backend.paper_gate.set()
        await task
        await session.wait_for_answer_key()
        assert session.lookup("q2").correct_answer == "b"

    asyncio.run(scenario())
    assert fake_backend.calls[0] == ("get_paper", "p1")
    assert fake_backend.calls[1] == ("get_answer_key", "p1")


def test_key_failure_is_silent(fake_backend, caplog):
    fake_backend.key_error = FetchError("Answer key unavailable", status_code=500)

    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        session.set_evaluation_mode(True)
        await session.wait_for_answer_key()
        return session

    with caplog.at_level("ERROR"):
        session = asyncio.run(scenario())

    assert session.evaluation_mode is True
    assert session.key_state is KeyState.ERROR
    assert session.error is None
    assert session.state is SessionState.PAPER_LOADED
    assert session.lookup("q1") is None
    assert "Answer key unavailable" in caplog.text


def test_late_paper_discarded_after_close(fake_backend):
    async def scenario():
        fake_backend.paper_gate = asyncio.Event()
        session = ReviewSession(fake_backend, "p1")
        task = asyncio.create_task(session.start())
        await asyncio.sleep(0)

        session.close()
        fake_backend.paper_gate.set()
        await task
        return session

    session = asyncio.run(scenario())
    assert session.closed
    assert session.paper is None
    assert session.sections == []


def test_close_cancels_pending_key_fetch(fake_backend):
    async def scenario():
        fake_backend.key_gate = asyncio.Event()
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        session.set_evaluation_mode(True)
        await asyncio.sleep(0)

        session.close()
        await session.wait_for_answer_key()
        fake_backend.key_gate.set()
        await asyncio.sleep(0)
        return session

    session = asyncio.run(scenario())
    assert session.answer_key is None
    assert session.lookup("q1") is None


def test_start_after_close_rejected(fake_backend):
    session = ReviewSession(fake_backend, "p1")
    session.close()
    with pytest.raises(RuntimeError, match="closed"):
        asyncio.run(session.start())


def test_print_requires_loaded_paper(fake_backend, tmp_path):
    session = ReviewSession(fake_backend, "p1")
    with pytest.raises(PaperNotReadyError):
        session.print_paper(tmp_path / "paper.docx")

    async def scenario():
        fake_backend.paper_gate = asyncio.Event()
        task = asyncio.create_task(session.start())
        await asyncio.sleep(0)
        with pytest.raises(PaperNotReadyError):
            session.print_paper(tmp_path / "paper.docx")
        fake_backend.paper_gate.set()
        await task

    asyncio.run(scenario())
    assert session.print_paper(tmp_path / "paper.docx").exists()


def test_print_with_answers_in_evaluation_mode(fake_backend, tmp_path):
    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        plain = session.print_paper(tmp_path / "plain.docx")
        session.set_evaluation_mode(True)
        await session.wait_for_answer_key()
        revealed = session.print_paper(tmp_path / "revealed.docx")
        return plain, revealed

    plain, revealed = asyncio.run(scenario())

    def cell_text(path):
        doc = Document(str(path))
        return "\n".join(cell.text for table in doc.tables for row in table.rows for cell in row.cells)

    assert "Answer:" not in cell_text(plain)
    assert "Answer: a" in cell_text(revealed)
    assert "Explanation: A stack is LIFO." in cell_text(revealed)


def test_unexpected_paper_error_is_terminal(fake_backend):
    fake_backend.paper_error = RuntimeError("decoder exploded")

    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.PAPER_ERROR
    assert not session.loading_paper
    assert session.error == "decoder exploded"


def test_unexpected_key_error_degrades_silently(fake_backend):
    fake_backend.key_error = RuntimeError("decoder exploded")

    async def scenario():
        session = ReviewSession(fake_backend, "p1")
        await session.start()
        session.set_evaluation_mode(True)
        await session.wait_for_answer_key()
        return session

    session = asyncio.run(scenario())
    assert session.key_state is KeyState.ERROR
    assert not session.loading_key
    assert session.error is None
    assert session.lookup("q1") is None
