"""
cdp_har/data_models/har.py

HAR 1.2 document models.

Underscore-prefixed HAR extensions (_priority, _resourceType, ...) are exposed under
snake_case field names and serialized by alias.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

HAR_VERSION = "1.2"


class HarBaseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HarNameValue(HarBaseModel):
    """Name/value pair used for headers, query strings and cookies."""

    name: str
    value: str


class HarHeader(HarNameValue):
    pass


class HarQueryString(HarNameValue):
    pass


class HarCookie(HarNameValue):
    path: str | None = None
    domain: str | None = None
    expires: str | None = None
    httpOnly: bool | None = None
    secure: bool | None = None


class HarPostData(HarBaseModel):
    mimeType: str
    text: str


class HarRequest(HarBaseModel):
    method: str
    url: str
    httpVersion: str = "HTTP/1.1"
    headers: list[HarHeader] = Field(default_factory=list)
    queryString: list[HarQueryString] = Field(default_factory=list)
    cookies: list[HarCookie] = Field(default_factory=list)
    headersSize: int = -1
    bodySize: int = -1
    postData: HarPostData | None = None


class HarContent(HarBaseModel):
    size: int = 0
    compression: int | None = None
    mimeType: str = "x-unknown"
    text: str | None = None
    encoding: str | None = None


class HarResponse(HarBaseModel):
    status: int = 0
    statusText: str = ""
    httpVersion: str = "HTTP/1.1"
    headers: list[HarHeader] = Field(default_factory=list)
    cookies: list[HarCookie] = Field(default_factory=list)
    content: HarContent = Field(default_factory=HarContent)
    redirectURL: str = ""
    headersSize: int = -1
    bodySize: int = -1
    transfer_size: int | None = Field(default=None, alias="_transferSize")
    error: str | None = Field(default=None, alias="_error")


class HarCache(HarBaseModel):
    beforeRequest: dict[str, Any] | None = None
    afterRequest: dict[str, Any] | None = None


class HarTimings(HarBaseModel):
    blocked: float = -1
    dns: float = -1
    connect: float = -1
    send: float = 0
    wait: float = 0
    receive: float = 0
    ssl: float = -1


class HarEntry(HarBaseModel):
    pageref: str | None = None
    startedDateTime: str
    time: float = 0
    request: HarRequest
    response: HarResponse
    cache: HarCache = Field(default_factory=HarCache)
    timings: HarTimings = Field(default_factory=HarTimings)
    serverIPAddress: str | None = None
    connection: str | None = None
    from_cache: str | None = Field(default=None, alias="_fromCache")
    initiator: dict[str, Any] | None = Field(default=None, alias="_initiator")
    priority: str | None = Field(default=None, alias="_priority")
    resource_type: str | None = Field(default=None, alias="_resourceType")
    request_id: str | None = Field(default=None, alias="_requestId")


class HarPageTimings(HarBaseModel):
    onContentLoad: float = -1
    onLoad: float = -1


class HarPage(HarBaseModel):
    startedDateTime: str
    id: str
    title: str = ""
    pageTimings: HarPageTimings = Field(default_factory=HarPageTimings)


class HarCreator(HarBaseModel):
    name: str = "cdp-har"
    version: str = "0.1.0"


class HarLog(HarBaseModel):
    version: str = HAR_VERSION
    creator: HarCreator = Field(default_factory=HarCreator)
    pages: list[HarPage] = Field(default_factory=list)
    entries: list[HarEntry] = Field(default_factory=list)


class HarFile(HarBaseModel):
    """HAR file top-level schema."""

    log: HarLog = Field(default_factory=HarLog)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain HAR mapping, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
