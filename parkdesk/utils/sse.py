from typing import AsyncIterable, AsyncIterator, List, Optional


class SseDecoder:
    """
    Incremental text/event-stream decoder.

    Feed it one line at a time (without the trailing newline). A blank line
    dispatches the buffered event and `feed` returns its data; comment lines
    and fields other than `data`/`event` are ignored.
    """

    def __init__(self):
        self._data: List[str] = []
        self.event: Optional[str] = None

    def feed(self, line: str) -> Optional[str]:
        if line == "":
            if not self._data:
                self.event = None
                return None
            data = "\n".join(self._data)
            self._data = []
            self.event = None
            return data

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self.event = value
        return None


async def iter_sse_data(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    decoder = SseDecoder()
    async for line in lines:
        data = decoder.feed(line.rstrip("\r"))
        if data is not None:
            yield data
