from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol


@dataclass(frozen=True)
class RequestContext:
    remote_addr: str
    user_agent: str = ""
    ballot_token: Optional[str] = None
    # client-reported device traits: screen, timezone, language, platform
    device: Mapping[str, str] = field(default_factory=dict)


class IdentityStrategy(Protocol):
    name: str

    def fingerprint(self, ctx: RequestContext, token_id: Optional[str]) -> Optional[str]:
        """Origin material to hash; `token_id` is set only for a verified ballot token.

        Returns None when the request carries too little to tell this voter
        apart, in which case the ballot is refused.
        """
        ...
