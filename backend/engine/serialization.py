"""
JSON-friendly forms of actions for logs, traces and collaborator hand-off.
"""
from enum import Enum
from typing import Any, Dict, Optional

from .models import (
    Action,
    ActionPayload,
    BuildCityPayload,
    BuildRoadPayload,
    BuildSettlementPayload,
    DevCardType,
    DiscardResourcesPayload,
    GameAction,
    MoveRobberPayload,
    PlayDevCardPayload,
    ResourceType,
    StealResourcePayload,
    TradeBankPayload,
)


def _serialize_value(v: Any) -> Any:
    if isinstance(v, Enum):
        return v.value
    if isinstance(v, dict):
        return {_serialize_value(k): _serialize_value(val) for k, val in v.items() if val}
    return v


def _resources_from_dict(data: Optional[Dict[str, int]]) -> Optional[Dict[ResourceType, int]]:
    if data is None:
        return None
    return {ResourceType(k): int(v) for k, v in data.items()}


def serialize_action_payload(payload: Optional[ActionPayload]) -> Optional[Dict[str, Any]]:
    """Serialize an action payload to a plain dict (zero resource counts dropped)."""
    if payload is None:
        return None
    return {
        name: _serialize_value(value)
        for name, value in vars(payload).items()
        if value is not None
    }


def deserialize_action_payload(action: Action, data: Optional[Dict[str, Any]]) -> Optional[ActionPayload]:
    """Rebuild the typed payload for an action from its dict form."""
    if data is None:
        return None
    if action in (Action.BUILD_ROAD, Action.SETUP_PLACE_ROAD):
        return BuildRoadPayload(edge_id=data["edge_id"])
    if action in (Action.BUILD_SETTLEMENT, Action.SETUP_PLACE_SETTLEMENT):
        return BuildSettlementPayload(vertex_id=data["vertex_id"])
    if action == Action.BUILD_CITY:
        return BuildCityPayload(vertex_id=data["vertex_id"])
    if action == Action.PLAY_DEV_CARD:
        monopoly = data.get("monopoly_resource_type")
        return PlayDevCardPayload(
            card_id=data["card_id"],
            card_type=DevCardType(data["card_type"]),
            year_of_plenty_resources=_resources_from_dict(data.get("year_of_plenty_resources")),
            monopoly_resource_type=ResourceType(monopoly) if monopoly else None,
        )
    if action == Action.TRADE_BANK:
        return TradeBankPayload(
            give_resources=_resources_from_dict(data["give_resources"]),
            receive_resources=_resources_from_dict(data["receive_resources"]),
            port_vertex_id=data.get("port_vertex_id"),
        )
    if action == Action.MOVE_ROBBER:
        return MoveRobberPayload(hex_id=data["hex_id"])
    if action == Action.STEAL_RESOURCE:
        return StealResourcePayload(target_player_id=data["target_player_id"])
    if action == Action.DISCARD_RESOURCES:
        return DiscardResourcesPayload(resources=_resources_from_dict(data["resources"]))
    raise ValueError(f"Action {action.value} takes no payload")


def serialize_action(action: GameAction) -> Dict[str, Any]:
    return {
        "type": action.type.value,
        "player_id": action.player_id,
        "payload": serialize_action_payload(action.payload),
    }


def deserialize_action(data: Dict[str, Any]) -> GameAction:
    action_type = Action(data["type"])
    return GameAction(
        type=action_type,
        player_id=data["player_id"],
        payload=deserialize_action_payload(action_type, data.get("payload")),
    )
