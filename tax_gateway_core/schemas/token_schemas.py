"""
Pydantic schemas for portal security tokens.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..constants import TokenKind


class TokenPolicy(BaseModel):
    """How long a token kind lives and how early it is refreshed."""

    model_config = ConfigDict(frozen=True)

    lifetime: timedelta = Field(..., description="Nominal lifetime granted by the portal")
    refresh_margin: timedelta = Field(
        default=timedelta(0), description="Treat the token as expired this much earlier"
    )

    @model_validator(mode="after")
    def check_margin(self) -> "TokenPolicy":
        if self.refresh_margin >= self.lifetime:
            raise ValueError("refresh_margin must be shorter than lifetime")
        return self

    @property
    def effective_lifetime(self) -> timedelta:
        return self.lifetime - self.refresh_margin

    def expires_at(self, issued_at: datetime) -> datetime:
        return issued_at + self.effective_lifetime


class Token(BaseModel):
    """An issued token and the instant it stops being usable."""

    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    value: str = Field(..., min_length=1, repr=False)
    issued_at: datetime
    expires_at: datetime

    def is_valid_at(self, now: datetime) -> bool:
        """Usable iff now is strictly before expiry."""
        return now < self.expires_at
