from __future__ import annotations

import logging
from typing import Optional

import discord

from ..constants import MAX_BUTTONS_PER_ROW
from ..events import ActionKind, Controls

log = logging.getLogger("ideahub.ui.views")

_STYLES = {
    ActionKind.APPROVE: discord.ButtonStyle.success,
    ActionKind.REJECT: discord.ButtonStyle.danger,
    ActionKind.SUBMIT: discord.ButtonStyle.primary,
    ActionKind.COMMENT: discord.ButtonStyle.primary,
}


def build_view(controls: Optional[Controls]) -> Optional[discord.ui.View]:
    """Render controls as buttons whose custom_id is the encoded action token.

    The buttons have no callbacks of their own: the ideas cog picks every
    component interaction up in ``on_interaction`` and decodes the token, so
    buttons keep working on messages sent before a restart.
    """
    if not controls:
        return None
    view = discord.ui.View(timeout=None)
    # Discord allows at most 5 rows of 5 buttons
    for row_index, row in enumerate(controls[:5]):
        for control in row[:MAX_BUTTONS_PER_ROW]:
            view.add_item(
                discord.ui.Button(
                    label=control.label,
                    custom_id=control.action.encode(),
                    style=_STYLES.get(control.action.kind, discord.ButtonStyle.secondary),
                    row=row_index,
                )
            )
    if len(controls) > 5:
        log.debug("Dropped %d control rows over the Discord limit", len(controls) - 5)
    return view
