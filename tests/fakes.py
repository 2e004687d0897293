import asyncio
from typing import List, Optional, Tuple
from queryhub.models.records import QueryType
from queryhub.services.upstream import UpstreamResult

IDENTITY_PAYLOAD = {"basicData": {"name": "MARIA DA SILVA", "cpf": "11122233344"}}


class FakeUpstream:
    """Stand-in for the third-party lookup API"""

    def __init__(
        self,
        result: Optional[UpstreamResult] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.result = result or UpstreamResult(success=True, data=IDENTITY_PAYLOAD)
        self.delay = delay
        self.error = error
        self.gate = gate
        self.calls: List[Tuple[QueryType, str]] = []
        self.closed = False

    async def lookup(self, query_type, parameter):
        self.calls.append((QueryType(query_type), parameter))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self):
        self.closed = True
