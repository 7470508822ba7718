from .attestor import Attestor, NonceTracker  # noqa: F401
from .client import HttpOracleClient, OracleClient, OracleJudgment  # noqa: F401
