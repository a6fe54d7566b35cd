from __future__ import annotations

from typing import Annotated, List, Literal, Union
from pydantic import BaseModel, Field


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    ledger: str = "ctf"
    tags: List[str] = []


# ---- Condition lifecycle ----

class ConditionPreparation(BaseEvent):
    event_type: Literal["condition_preparation"] = "condition_preparation"
    condition_id: str
    oracle: str
    question_id: str
    outcome_slot_count: int


class ConditionResolution(BaseEvent):
    event_type: Literal["condition_resolution"] = "condition_resolution"
    condition_id: str
    oracle: str
    question_id: str
    outcome_slot_count: int
    payout_numerators: List[int]


# ---- Position movements ----

class PositionSplit(BaseEvent):
    event_type: Literal["position_split"] = "position_split"
    stakeholder: str
    collateral: str
    parent_collection_id: str
    condition_id: str
    partition: List[int]
    amount: int


class PositionsMerge(BaseEvent):
    event_type: Literal["positions_merge"] = "positions_merge"
    stakeholder: str
    collateral: str
    parent_collection_id: str
    condition_id: str
    partition: List[int]
    amount: int


class PayoutRedemption(BaseEvent):
    event_type: Literal["payout_redemption"] = "payout_redemption"
    redeemer: str
    collateral: str
    parent_collection_id: str
    condition_id: str
    index_sets: List[int]
    payout: int


class TransferSingle(BaseEvent):
    event_type: Literal["transfer_single"] = "transfer_single"
    operator: str
    sender: str
    recipient: str
    position_id: int
    amount: int


class TransferBatch(BaseEvent):
    event_type: Literal["transfer_batch"] = "transfer_batch"
    operator: str
    sender: str
    recipient: str
    position_ids: List[int]
    amounts: List[int]


class ApprovalForAll(BaseEvent):
    event_type: Literal["approval_for_all"] = "approval_for_all"
    owner: str
    operator: str
    approved: bool


# ---- Exchange collaborator ----

class TokenRegistered(BaseEvent):
    event_type: Literal["token_registered"] = "token_registered"
    token: int
    complement: int
    condition_id: str


AnyEvent = Annotated[
    Union[
        ConditionPreparation,
        ConditionResolution,
        PositionSplit,
        PositionsMerge,
        PayoutRedemption,
        TransferSingle,
        TransferBatch,
        ApprovalForAll,
        TokenRegistered,
    ],
    Field(discriminator="event_type"),
]


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: AnyEvent
