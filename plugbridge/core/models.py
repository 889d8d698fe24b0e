"""Host-side records exchanged with plugins."""

from typing import NewType

from pydantic import BaseModel, ConfigDict, field_validator

Version = NewType("Version", str)


class Info(BaseModel):
    """One resolvable or installable artifact."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: Version
    note: str = ""
    path: str = ""

    def label(self) -> str:
        return f"{self.name}@{self.version}"


class Package(BaseModel):
    """The primary artifact plus any co-installed ones."""

    model_config = ConfigDict(frozen=True)

    main: Info
    additional: list[Info] = []

    @field_validator("additional")
    @classmethod
    def reject_unnamed_additional(cls, v: list[Info]) -> list[Info]:
        for info in v:
            if not info.name:
                raise ValueError("additional artifacts must be named")
        return v

    def artifacts(self) -> list[Info]:
        """Main artifact followed by the additional ones."""
        return [self.main, *self.additional]


class EnvKV(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str
