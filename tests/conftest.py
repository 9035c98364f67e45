"""Shared fakes for loop, graph and CLI tests (no network, no real shell)."""

from typing import Dict, List, Optional

import pytest

from shellcraft.executor import ExecutionResult
from shellcraft.model_client import BackendError, CompletionResult, Message, ModelClient


class ScriptedClient(ModelClient):
    """Returns canned replies in order; the last reply repeats."""

    def __init__(self, replies: List[str], error: Optional[Exception] = None):
        self.replies = list(replies)
        self.error = error
        self.calls: List[List[Message]] = []

    def complete(self, messages, timeout=30.0):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        index = min(len(self.calls), len(self.replies)) - 1
        return CompletionResult(content=self.replies[index], model="fake-model")

    def user_prompt(self, call_index: int) -> str:
        return self.calls[call_index][1].content


class FakeExecutor:
    """Records commands and returns canned results; the last result repeats."""

    def __init__(self, results: List[ExecutionResult], error: Optional[Exception] = None):
        self.results = list(results)
        self.error = error
        self.commands: List[str] = []

    def execute(self, command: str) -> ExecutionResult:
        self.commands.append(command)
        if self.error is not None:
            raise self.error
        index = min(len(self.commands), len(self.results)) - 1
        return self.results[index]


class ScriptedConfirm:
    """confirm(question, default) answering from per-question queues."""

    def __init__(self, answers: Dict[str, List[bool]]):
        self.answers = {q: list(a) for q, a in answers.items()}
        self.questions: List[str] = []

    def __call__(self, question: str, default: bool) -> bool:
        self.questions.append(question)
        queue = self.answers.get(question)
        if not queue:
            return default
        return queue.pop(0) if len(queue) > 1 else queue[0]


def ok(output: str = "") -> ExecutionResult:
    return ExecutionResult(succeeded=True, output=output, exit_code=0)


def failed(output: str = "error", exit_code: int = 1) -> ExecutionResult:
    return ExecutionResult(succeeded=False, output=output, exit_code=exit_code)


@pytest.fixture
def fakes():
    """Access to the fake collaborators from test modules."""
    class _Fakes:
        Client = ScriptedClient
        Executor = FakeExecutor
        Confirm = ScriptedConfirm
        BackendError = BackendError

    _Fakes.ok = staticmethod(ok)
    _Fakes.failed = staticmethod(failed)
    return _Fakes


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate config: no OPENAI_* / SHELLCRAFT_* variables, no .env loading."""
    for name in (
        "OPENAI_BASE_URL",
        "OPENAI_API_KEY",
        "OPENAI_MODEL",
        "SHELLCRAFT_LOCALE",
        "SHELLCRAFT_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("shellcraft.config.load_dotenv", lambda *a, **k: False)
    config_path = tmp_path / "config.yaml"
    monkeypatch.setenv("SHELLCRAFT_CONFIG", str(config_path))
    return config_path
