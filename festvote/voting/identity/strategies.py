import json
from typing import Optional

from festvote.voting.identity.base import RequestContext

DEVICE_TRAITS = ("screen", "timezone", "language", "platform")


class NetworkIdentityStrategy:
    """Network origin only.

    Voters sharing one public address (venue WiFi, carrier NAT) collapse into a
    single identity and only the first ballot per group counts. That
    under-count is accepted; use the session or fingerprint strategy where it
    matters.
    """

    name = "network"

    def fingerprint(self, ctx: RequestContext, token_id: Optional[str]) -> Optional[str]:
        return ctx.remote_addr


class SessionTokenIdentityStrategy:
    """Network origin plus the ballot token issued at widget load.

    A ballot without a valid token for the show is refused. The status
    endpoint hands a returning client its existing token back, so re-polling
    does not mint a new identity.
    """

    name = "session"

    def fingerprint(self, ctx: RequestContext, token_id: Optional[str]) -> Optional[str]:
        if not token_id:
            return None
        return f"{ctx.remote_addr}|{token_id}"


class FingerprintIdentityStrategy:
    """Network origin plus a device fingerprint.

    The fingerprint is the user agent together with the screen, timezone,
    language and platform the widget reports. A ballot with none of the
    device traits is refused.
    """

    name = "fingerprint"

    def fingerprint(self, ctx: RequestContext, token_id: Optional[str]) -> Optional[str]:
        traits = {k: str(ctx.device.get(k) or "") for k in DEVICE_TRAITS}
        if not any(traits.values()):
            return None
        traits["user_agent"] = ctx.user_agent
        return f"{ctx.remote_addr}|{json.dumps(traits, sort_keys=True)}"
