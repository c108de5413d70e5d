"""Shared fixtures for the intake app tests."""

import pytest

from src.config import ExtractionSettings
from src.document_payload import DocumentPayload
from src.models import AppState, BankRecord, ManualData, MemberDebt


class ScriptedCaller:
    """
    Fake model caller. `script` maps model name -> list of outcomes; an outcome
    is either a response string or an exception instance to raise.
    The last outcome repeats once the list runs out.
    """

    def __init__(self, script):
        self.script = {name: list(outcomes) for name, outcomes in script.items()}
        self.calls = []

    def __call__(self, model_name, payload, spec):
        self.calls.append((model_name, spec))
        outcomes = self.script[model_name]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def models_called(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def settings():
    return ExtractionSettings(
        model_priority=("model-a", "model-b", "model-c"),
        max_attempts=3,
        backoff_seconds=4.0,
        model_switch_delay=1.0,
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def payload():
    return DocumentPayload(data=b"%PDF-1.4 fake", mime_type="application/pdf", name="doc.pdf")


@pytest.fixture
def make_caller():
    return ScriptedCaller


@pytest.fixture
def sample_state():
    manual = ManualData(
        corporate_banks=(
            BankRecord(id="c1", bank_name="VCB", amount="1.500"),
            BankRecord(id="c2", bank_name="OTHER", other_name="X", amount="2,25"),
        ),
        personal_debts=(
            MemberDebt(id="m1", name="Nguyễn Văn A", banks=(BankRecord(id="b1", bank_name="TCB", amount="3"),)),
            MemberDebt(id="m2", name="", banks=(BankRecord(id="b2", bank_name="ACB", amount="0,5"),)),
        ),
    )
    return AppState(manual=manual)
