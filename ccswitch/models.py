from dataclasses import dataclass, field
from typing import Any, Dict, Optional

AUTH_TOKEN_KEY = "ANTHROPIC_AUTH_TOKEN"
BASE_URL_KEY = "ANTHROPIC_BASE_URL"
CONFIG_NAME_KEY = "_configName"
ENV_KEY = "env"


@dataclass
class ApiConfig:
    """One named entry of the configuration list.

    ``raw`` is the entry exactly as stored, so unrelated fields and the
    original credential shape survive a rewrite of the list.
    """

    name: str
    auth_token: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_credentials(self) -> bool:
        return bool(self.auth_token) and bool(self.base_url)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiConfig":
        """Normalize either the nested ``config.env`` shape or the flat shape."""
        auth_token = base_url = model = None
        config = data.get("config")
        env = config.get(ENV_KEY) if isinstance(config, dict) else None
        if isinstance(env, dict):
            auth_token = env.get(AUTH_TOKEN_KEY)
            base_url = env.get(BASE_URL_KEY)
            model = config.get("model")
        if not (auth_token and base_url) and data.get("authToken") and data.get("baseUrl"):
            auth_token = data.get("authToken")
            base_url = data.get("baseUrl")
            model = data.get("model", model)

        return cls(
            name=str(data.get("name", "")),
            auth_token=auth_token if isinstance(auth_token, str) else None,
            base_url=base_url if isinstance(base_url, str) else None,
            model=model if isinstance(model, str) else None,
            raw=data,
        )

    @classmethod
    def create(cls, name: str, base_url: str, auth_token: str, model: Optional[str] = None) -> "ApiConfig":
        """Build a new entry in the nested shape."""
        config: Dict[str, Any] = {
            ENV_KEY: {
                AUTH_TOKEN_KEY: auth_token,
                BASE_URL_KEY: base_url,
                "CLAUDE_CODE_DISABLE_NONESSENTIAL_TRAFFIC": "1",
            },
            "permissions": {"allow": [], "deny": []},
        }
        if model:
            config["model"] = model
        return cls.from_dict({"name": name, "config": config})

    def to_dict(self) -> Dict[str, Any]:
        return self.raw
