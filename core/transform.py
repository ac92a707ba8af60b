"""Response body transformations for legacy route shapes."""

import json

from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from core.exceptions import ResponseTransformError


class OnlineStatus(BaseModel):
    """The one field legacy callers care about from the online endpoint."""

    model_config = ConfigDict(extra="ignore")

    online: StrictBool = False


class ResponseTransformer:
    """Transform upstream bodies for legacy callers."""

    def legacy_online_body(self, raw: bytes) -> bytes:
        """Reduce a character online object to a bare JSON boolean."""
        try:
            status = OnlineStatus.model_validate_json(raw or b"")
        except ValidationError as e:
            raise ResponseTransformError(f"Unexpected online status body: {e}") from e
        return json.dumps(status.online).encode()
