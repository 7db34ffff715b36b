from __future__ import annotations

import discord
import pytest

from conftest import approved_idea
from ideahub.events import Action
from ideahub.ui import menus
from ideahub.ui.views import build_view


@pytest.mark.asyncio
async def test_no_controls_means_no_view() -> None:
    assert build_view(()) is None
    assert build_view(None) is None


@pytest.mark.asyncio
async def test_buttons_carry_action_tokens(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    view = build_view(menus.review_controls(idea))

    buttons = [item for item in view.children if isinstance(item, discord.ui.Button)]
    assert [b.row for b in buttons] == [0, 0, 1]
    assert buttons[0].style is discord.ButtonStyle.success
    assert buttons[1].style is discord.ButtonStyle.danger
    assert all(Action.decode(b.custom_id) is not None for b in buttons)
    assert view.timeout is None
