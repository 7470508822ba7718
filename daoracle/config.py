from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv

from daoracle.common.metatx import (
    DEFAULT_CHAIN_ID,
    DEFAULT_DOMAIN_NAME,
    DEFAULT_DOMAIN_VERSION,
    MetaTxDomain,
)

load_dotenv()

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "t"}


@dataclass
class OracleConfig:
    endpoint: str = "http://localhost:8000"
    caller: str = ""
    timeout: float = 30.0
    retries: int = 2
    strict_availability: bool = True
    strict_finality: bool = True

    @classmethod
    def from_env(cls) -> "OracleConfig":
        return cls(
            endpoint=os.getenv("ORACLE_ENDPOINT", cls.endpoint),
            caller=os.getenv("ORACLE_CALLER", ""),
            timeout=float(os.getenv("ORACLE_TIMEOUT", "30")),
            retries=int(os.getenv("ORACLE_RETRIES", "2")),
            strict_availability=_env_bool("ORACLE_STRICT_AVAILABILITY", True),
            strict_finality=_env_bool("ORACLE_STRICT_FINALITY", True),
        )


@dataclass
class DomainConfig:
    receiver_address: str = ZERO_ADDRESS
    chain_id: int = DEFAULT_CHAIN_ID
    name: str = DEFAULT_DOMAIN_NAME
    version: str = DEFAULT_DOMAIN_VERSION

    @classmethod
    def from_env(cls) -> "DomainConfig":
        return cls(
            receiver_address=os.getenv("ORACLE_RECEIVER_ADDRESS", ZERO_ADDRESS),
            chain_id=int(os.getenv("CHAIN_ID", str(DEFAULT_CHAIN_ID))),
            name=os.getenv("METATX_DOMAIN_NAME", DEFAULT_DOMAIN_NAME),
            version=os.getenv("METATX_DOMAIN_VERSION", DEFAULT_DOMAIN_VERSION),
        )

    def domain(self) -> MetaTxDomain:
        return MetaTxDomain(
            verifying_contract=self.receiver_address,
            chain_id=self.chain_id,
            name=self.name,
            version=self.version,
        )


@dataclass
class ChainConfig:
    rpc_url: str = ""
    hub_address: str = ""
    private_key: str = ""
    attestor_private_key: str = ""
    collect_module: str = ZERO_ADDRESS
    hub_artifact: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ChainConfig":
        return cls(
            rpc_url=os.getenv("RPC_URL", ""),
            hub_address=os.getenv("HUB_ADDRESS", ""),
            private_key=os.getenv("PRIVATE_KEY", ""),
            attestor_private_key=os.getenv("ATTESTOR_PRIVATE_KEY", ""),
            collect_module=os.getenv("COLLECT_MODULE_ADDRESS", ZERO_ADDRESS),
            hub_artifact=os.getenv("HUB_ARTIFACT") or None,
        )

    def require(self, *names: str) -> None:
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise EnvironmentError(f"Missing required settings: {', '.join(missing)}")
