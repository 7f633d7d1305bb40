"""Request-scoped access to the runtime stored on ``app.state``."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from autobot.app import Autobot


def get_autobot(request: Request) -> Autobot:
    return request.app.state.autobot


autobot_dep = Annotated[Autobot, Depends(get_autobot)]
