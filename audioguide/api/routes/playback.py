"""
Playback API.

Drives the process-wide player: request playback, stop, and read the
current state. Denied playback is a 200 with a signal, not an error.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from audioguide.api.deps import get_player
from audioguide.components.playback import PlaybackController

router = APIRouter()


class PlayRequest(BaseModel):
    source_url: str | None = None


def _state(player: PlaybackController) -> dict[str, Any]:
    session = player.session
    return {
        "state": player.state.value,
        "contentId": session.content_id if session else None,
        "mode": session.mode.value if session else None,
        "sourceUrl": session.source_url if session else None,
        "startedAt": session.started_at.isoformat() if session else None,
    }


@router.get("")
def get_state(player: PlaybackController = Depends(get_player)) -> dict[str, Any]:
    return _state(player)


@router.post("/stop")
def stop(player: PlaybackController = Depends(get_player)) -> dict[str, Any]:
    player.stop()
    return _state(player)


@router.post("/{content_id}")
def play(
    content_id: str,
    body: PlayRequest | None = None,
    player: PlaybackController = Depends(get_player),
) -> dict[str, Any]:
    source_url = body.source_url if body else None
    return player.request(content_id, source_url).to_dict()
