"""
Tests for the admin bootstrap script.
"""

from argparse import Namespace

import pytest

from accounts.models import Role
from create_admin import build_parser, run


def args(**overrides):
    values = {"fullname": None, "email": None, "password": None, "promote": None}
    values.update(overrides)
    return Namespace(**values)


def test_parser_accepts_promote_only():
    parsed = build_parser().parse_args(["--promote", "ada@x.com"])

    assert parsed.promote == "ada@x.com"
    assert parsed.fullname is None


@pytest.mark.asyncio
async def test_creates_admin(store):
    code = await run(args(fullname="Ada Admin", email="ada@x.com", password="Secret123!"), store)

    assert code == 0
    assert (await store.find_by_email("ada@x.com")).role is Role.ADMIN


@pytest.mark.asyncio
async def test_rejects_weak_password(store):
    code = await run(args(fullname="Ada Admin", email="ada@x.com", password="weak"), store)

    assert code == 1
    assert await store.find_by_email("ada@x.com") is None


@pytest.mark.asyncio
async def test_promotes_existing_user(store, make_user):
    await make_user(email="jane@x.com")

    assert await run(args(promote="jane@x.com"), store) == 0
    assert (await store.find_by_email("jane@x.com")).role is Role.ADMIN
    assert await run(args(promote="jane@x.com"), store) == 0


@pytest.mark.asyncio
async def test_promote_unknown_email(store):
    assert await run(args(promote="nobody@x.com"), store) == 1
