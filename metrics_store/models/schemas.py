from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator

Int64 = Annotated[int, Field(ge=-(2**63), le=2**63 - 1)]


class _WireModel(BaseModel):
    """Base for models decoded from client JSON.

    Unknown keys are ignored unless validation runs with
    ``context={"allow_unknown_fields": False}``, in which case they fail
    validation. The context reaches nested models too.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _reject_unknown_fields(cls, data: Any, info: ValidationInfo) -> Any:
        context = info.context or {}
        if context.get("allow_unknown_fields", True) or not isinstance(data, dict):
            return data

        known = {field.alias or name for name, field in cls.model_fields.items()}
        for key in data:
            if key not in known:
                raise ValueError(f'unknown field "{key}"')
        return data


class MetricsStats(_WireModel):
    cpu_temp: Int64 = Field(default=0, alias="cpuTemp")
    fan_speed: Int64 = Field(default=0, alias="fanSpeed")
    hdd_space: Int64 = Field(default=0, alias="HDDSpace")
    # None means "not reported"; it is dropped from the wire output.
    internal_temp: Int64 | None = Field(default=None, alias="internalTemp")


class MachineMetrics(_WireModel):
    # Whatever the client sends here is replaced before storing.
    id: str | None = None
    machine_id: Int64 = Field(default=0, alias="machineId")
    stats: MetricsStats = Field(default_factory=MetricsStats)
    last_logged_in: str = Field(default="", alias="lastLoggedIn")
    sys_time: str = Field(default="", alias="sysTime")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MetricsCreatedResponse(BaseModel):
    id: str
    message: str
