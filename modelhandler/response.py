# Response shaping
#
# List responses carry a Content-Range header "<start>-<end>/<count>", the status is
# 206 (Partial Content) when rows remain after this page and 200 otherwise
#
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, List, Optional

CONTENT_RANGE = "Content-Range"


@dataclass(frozen=True)
class ResultEnvelope:
    """
    A page of records, start <= end <= count
    """

    rows: List[Any]
    start: int
    end: int
    count: int

    @classmethod
    def from_page(cls, rows: List[Any], count: int, offset: Optional[int], limit: Optional[int]) -> "ResultEnvelope":
        """
        :param rows: the fetched records
        :param count: total number of matching records
        :param offset: query offset
        :param limit: query limit, None if the query wasn't limited
        """
        offset = offset or 0
        start = min(offset, count)
        end = count if not limit else min(count, offset + limit)
        return cls(rows=rows, start=start, end=end, count=count)

    @property
    def partial(self) -> bool:
        return self.end < self.count

    @property
    def status(self) -> int:
        return HTTPStatus.PARTIAL_CONTENT.value if self.partial else HTTPStatus.OK.value

    @property
    def content_range(self) -> str:
        return f"{self.start}-{self.end}/{self.count}"


@dataclass
class HandlerResponse:
    """
    Status, headers and body set by a handler, written to the client by the http binding
    """

    status: int = HTTPStatus.OK.value
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    # primary key of a created record, used for the Location header
    key: Any = None

    @classmethod
    def page(cls, envelope: ResultEnvelope, body: Any) -> "HandlerResponse":
        return cls(status=envelope.status, body=body, headers={CONTENT_RANGE: envelope.content_range})
