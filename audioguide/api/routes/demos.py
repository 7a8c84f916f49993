from typing import Any

from fastapi import APIRouter, Depends

from audioguide.api.deps import get_demo_gate
from audioguide.components.demo_gate import DemoGate

router = APIRouter()


@router.get("")
def list_consumed(gate: DemoGate = Depends(get_demo_gate)) -> dict[str, Any]:
    return {"consumed": gate.consumed_ids()}


@router.get("/{content_id}")
def get_decision(content_id: str, gate: DemoGate = Depends(get_demo_gate)) -> dict[str, Any]:
    decision = gate.decide(content_id)
    return {
        "contentId": content_id,
        "decision": decision.value,
        "consumed": gate.is_consumed(content_id),
        "allowsPlayback": decision.allows_playback,
    }


@router.delete("/{content_id}")
def reset_demo(content_id: str, gate: DemoGate = Depends(get_demo_gate)) -> dict[str, Any]:
    return {"contentId": content_id, "removed": gate.reset(content_id)}
