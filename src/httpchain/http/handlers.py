"""Response body decoding strategies.

A :class:`BodyHandler` decides how the body of a successful response is
materialised: as text, raw bytes, a lazily consumed stream, a file on disk,
parsed JSON or a validated pydantic model.  The handler is chosen per call,
so the same :class:`~httpchain.http.request.Request` can be decoded in
different ways.

Handlers receive a streaming :class:`httpx.Response` that has not been read
yet.  Unless :attr:`BodyHandler.owns_response` is set, the transport closes
the response once the handler returns.

Use the :class:`BodyHandlers` factory rather than the classes directly::

    client.send(request, BodyHandlers.text())
    client.send(request, BodyHandlers.model(IdentityToken))
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any, Generic, TypeVar, Union

import httpx
from pydantic import BaseModel

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class BodyHandler(ABC, Generic[T]):
    """Strategy that turns an unread streaming response into a body value."""

    owns_response: bool = False
    """When ``True`` the handler closes the response itself (streaming)."""

    @abstractmethod
    def handle(self, response: httpx.Response) -> T:
        """Materialise the body of a synchronous streaming response."""
        ...

    @abstractmethod
    async def handle_async(self, response: httpx.Response) -> T:
        """Materialise the body of an asynchronous streaming response."""
        ...


class TextHandler(BodyHandler[str]):
    def handle(self, response: httpx.Response) -> str:
        response.read()
        return response.text

    async def handle_async(self, response: httpx.Response) -> str:
        await response.aread()
        return response.text


class BytesHandler(BodyHandler[bytes]):
    def handle(self, response: httpx.Response) -> bytes:
        return response.read()

    async def handle_async(self, response: httpx.Response) -> bytes:
        return await response.aread()


class JsonHandler(BodyHandler[Any]):
    """Decode the body as JSON; an empty body decodes to ``None``."""

    def handle(self, response: httpx.Response) -> Any:
        response.read()
        return response.json() if response.content else None

    async def handle_async(self, response: httpx.Response) -> Any:
        await response.aread()
        return response.json() if response.content else None


class ModelHandler(BodyHandler[M]):
    """Validate the JSON body into a pydantic model.

    Args:
        model: The :class:`pydantic.BaseModel` subclass to validate into.
    """

    def __init__(self, model: type[M]) -> None:
        self._model = model

    def handle(self, response: httpx.Response) -> M:
        return self._model.model_validate_json(response.read())

    async def handle_async(self, response: httpx.Response) -> M:
        return self._model.model_validate_json(await response.aread())


class StreamHandler(BodyHandler[Union[Iterator[Any], AsyncIterator[Any]]]):
    """Hand the body back as an iterator of byte chunks or text lines.

    The response stays open until the iterator is exhausted or closed, so
    callers must consume it.

    Args:
        lines: Yield decoded text lines instead of raw byte chunks.
    """

    owns_response = True

    def __init__(self, lines: bool = False) -> None:
        self._lines = lines

    def handle(self, response: httpx.Response) -> Iterator[Any]:
        def _iterate() -> Iterator[Any]:
            try:
                source = response.iter_lines() if self._lines else response.iter_bytes()
                yield from source
            finally:
                response.close()

        return _iterate()

    async def handle_async(self, response: httpx.Response) -> AsyncIterator[Any]:
        async def _iterate() -> AsyncIterator[Any]:
            try:
                source = response.aiter_lines() if self._lines else response.aiter_bytes()
                async for chunk in source:
                    yield chunk
            finally:
                await response.aclose()

        return _iterate()


class FileHandler(BodyHandler[Path]):
    """Write the body to *path* chunk by chunk and return the path.

    Args:
        path: Destination file; parent directories are created if needed.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    def handle(self, response: httpx.Response) -> Path:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "wb") as f:
            for chunk in response.iter_bytes():
                f.write(chunk)
        return self._path

    async def handle_async(self, response: httpx.Response) -> Path:
        await asyncio.to_thread(self._path.parent.mkdir, parents=True, exist_ok=True)
        f = await asyncio.to_thread(open, self._path, "wb")
        try:
            async for chunk in response.aiter_bytes():
                await asyncio.to_thread(f.write, chunk)
        finally:
            await asyncio.to_thread(f.close)
        return self._path


class BodyHandlers:
    """Factory for the built-in :class:`BodyHandler` strategies."""

    @staticmethod
    def text() -> TextHandler:
        return TextHandler()

    @staticmethod
    def bytes() -> BytesHandler:
        return BytesHandler()

    @staticmethod
    def json() -> JsonHandler:
        return JsonHandler()

    @staticmethod
    def model(model: type[M]) -> ModelHandler[M]:
        return ModelHandler(model)

    @staticmethod
    def stream() -> StreamHandler:
        return StreamHandler()

    @staticmethod
    def lines() -> StreamHandler:
        return StreamHandler(lines=True)

    @staticmethod
    def file(path: Union[str, Path]) -> FileHandler:
        return FileHandler(path)
