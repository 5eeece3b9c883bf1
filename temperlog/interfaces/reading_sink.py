from typing import Protocol
from temperlog.model.reading import Sample


class ReadingSink(Protocol):
    def on_sample(self, sample: Sample) -> None: ...
    def close(self) -> None: ...
