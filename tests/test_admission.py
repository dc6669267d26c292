import asyncio

import pytest

from gengate.daemon.control import admit_and_generate
from gengate.daemon.errors import (
    GenerationError,
    GenerationTimeout,
    InsufficientBalance,
    ValidationError,
)
from gengate.daemon.ledger import Caller, LedgerReason, Role, get_balance, list_entries


class RecordingGenerator:
    def __init__(self, result=None, delay: float = 0.0, error: Exception | None = None):
        self.calls: list[str] = []
        self.result = result if result is not None else {"candidates": [{"text": "ok"}]}
        self.delay = delay
        self.error = error

    async def __call__(self, prompt: str):
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


def _run(caller, prompt, request_id, generator, timeout_seconds=1.0):
    return asyncio.run(
        admit_and_generate(
            caller=caller,
            prompt=prompt,
            request_id=request_id,
            generator=generator,
            timeout_seconds=timeout_seconds,
        )
    )


ALICE = Caller(identity="alice", role=Role.ORDINARY)


class TestScenarios:
    def test_charged_call_then_duplicate(self, make_account):
        make_account("alice", balance=1)
        generator = RecordingGenerator(result={"image": "cat.png"})

        first = _run(ALICE, "a cat", "r1", generator)
        assert first.status_code == 200
        assert first.body["ok"] is True
        assert first.body["data"] == {"image": "cat.png"}
        assert first.body["balance"] == 0

        second = _run(ALICE, "a cat", "r1", generator)
        assert second.status_code == 200
        assert second.body["skipped"] is True
        assert second.body["reason"] == "duplicate"

        assert generator.calls == ["a cat"]
        assert get_balance("alice") == 0

    def test_no_funds_then_duplicate(self, make_account):
        make_account("bob", balance=0)
        bob = Caller(identity="bob", role=Role.ORDINARY)
        generator = RecordingGenerator()

        with pytest.raises(InsufficientBalance) as exc_info:
            _run(bob, "a cat", "r2", generator)
        assert exc_info.value.to_body()["error"] == "no tokens"

        third = _run(bob, "a cat", "r2", generator)
        assert third.body["skipped"] is True
        assert generator.calls == []
        assert get_balance("bob") == 0

    def test_timeout_keeps_debit(self, make_account):
        make_account("alice", balance=2)
        generator = RecordingGenerator(delay=5.0)

        with pytest.raises(GenerationTimeout) as exc_info:
            _run(ALICE, "a cat", "slow-1", generator, timeout_seconds=0.05)

        assert exc_info.value.details["requestId"] == "slow-1"
        assert get_balance("alice") == 1
        assert list_entries("alice")[-1].reason == LedgerReason.GENERATION_DEBIT

    def test_generator_failure_keeps_debit(self, make_account):
        make_account("alice", balance=2)
        generator = RecordingGenerator(error=RuntimeError("boom"))

        with pytest.raises(GenerationError):
            _run(ALICE, "a cat", "err-1", generator)

        assert get_balance("alice") == 1

    def test_privileged_call_is_free(self, make_account):
        make_account("root", balance=0, role="privileged")
        root = Caller(identity="root", role=Role.PRIVILEGED)

        response = _run(root, "a cat", "adm-1", RecordingGenerator())

        assert response.status_code == 200
        assert "balance" not in response.body
        assert get_balance("root") == 0
        assert list_entries("root")[-1].reason == LedgerReason.ADMIN_BYPASS


class TestValidation:
    @pytest.mark.parametrize("prompt", [None, "", 42, ["a cat"]])
    def test_bad_prompt_is_rejected_before_billing(self, make_account, prompt):
        make_account("alice", balance=1)
        generator = RecordingGenerator()

        with pytest.raises(ValidationError):
            _run(ALICE, prompt, "r1", generator)

        assert get_balance("alice") == 1
        assert generator.calls == []
        # the id was never admitted
        assert _run(ALICE, "a cat", "r1", generator).body["ok"] is True

    def test_non_string_request_id_rejected(self, make_account):
        make_account("alice", balance=1)
        with pytest.raises(ValidationError):
            _run(ALICE, "a cat", 12, RecordingGenerator())

    def test_missing_request_id_is_synthesized(self, make_account):
        make_account("alice", balance=2)

        response = _run(ALICE, "a cat", None, RecordingGenerator())

        assert response.body["requestId"].startswith("alice-")
        assert get_balance("alice") == 1

    def test_empty_request_id_is_synthesized(self, make_account):
        make_account("alice", balance=1)

        response = _run(ALICE, "a cat", "", RecordingGenerator())

        assert response.body["requestId"].startswith("alice-")

    def test_whitespace_prompt_is_accepted(self, make_account):
        make_account("alice", balance=1)
        generator = RecordingGenerator()

        response = _run(ALICE, "  ", "w1", generator)

        assert response.status_code == 200
        assert generator.calls == ["  "]
        assert get_balance("alice") == 0

    def test_request_ids_are_used_verbatim(self, make_account):
        make_account("alice", balance=3)
        generator = RecordingGenerator()

        first = _run(ALICE, "a cat", "r1", generator)
        padded = _run(ALICE, "a cat", "r1 ", generator)
        blank = _run(ALICE, "a cat", "   ", generator)

        assert first.body["requestId"] == "r1"
        assert padded.body["requestId"] == "r1 "
        assert "skipped" not in padded.body
        assert blank.body["requestId"] == "   "
        assert len(generator.calls) == 3
        assert get_balance("alice") == 0

    def test_long_request_ids_are_accepted(self, make_account):
        make_account("alice", balance=1)

        response = _run(ALICE, "a cat", "x" * 1000, RecordingGenerator())

        assert response.body["requestId"] == "x" * 1000
