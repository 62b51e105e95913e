"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest

from fakes import PAGE_URL
from vault_clipper.clipper.gateways import BrowsingContext


@pytest.fixture()
def page_context() -> BrowsingContext:
    return BrowsingContext(url=PAGE_URL)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Drop every VAULT_CLIPPER_* variable inherited from the shell."""

    for name in list(os.environ):
        if name.startswith("VAULT_CLIPPER_"):
            monkeypatch.delenv(name)
    return monkeypatch
