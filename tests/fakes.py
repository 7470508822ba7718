import asyncio
from pathlib import Path

from daoracle.common.judgment import CollectJudgment
from daoracle.node.client import OracleJudgment

# well-known hardhat development accounts
ATTESTOR_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OUTSIDER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

RECEIVER_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
OTHER_RECEIVER_ADDRESS = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"
COLLECT_MODULE = "0x9fe46736679d2d9a65f0992f2272de9f3c7fa6e0"
CONTENT_POINTER = "ar://s7-KUGt9F0TuJ4xTP01kbybqz0QLsk7NKp4zy4day1M"
DATA_DIR = Path(__file__).resolve().parent / "data"


def confirm(request):
    return OracleJudgment.success(CollectJudgment.for_request(request).encode())


class ScriptedOracle:
    """Answers queries from a script; the last step repeats once the script runs out."""

    def __init__(self, *script, delay: float = 0.0):
        self._script = list(script) or [confirm]
        self._delay = delay
        self.requests = []

    async def query(self, request):
        self.requests.append(request)
        if self._delay:
            await asyncio.sleep(self._delay)
        step = self._script[min(len(self.requests), len(self._script)) - 1]
        return step(request) if callable(step) else step
