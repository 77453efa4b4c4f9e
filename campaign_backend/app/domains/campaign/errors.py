from typing import Any


class CampaignDocumentError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class TargetResolutionError(CampaignDocumentError):
    def __init__(
        self,
        reason: str,
        theme_index: int | None = None,
        ad_group_index: int | None = None,
    ):
        super().__init__(
            message=f"Cannot resolve regeneration target: {reason}",
            details={
                "reason": reason,
                "theme_index": theme_index,
                "ad_group_index": ad_group_index,
            },
        )
        self.reason = reason
        self.theme_index = theme_index
        self.ad_group_index = ad_group_index
