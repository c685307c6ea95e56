from abc import ABC, abstractmethod

from .log_core import StructureDescriptor


class BaseStructureFinder(ABC):

    def __init__(self, sample_messages, structure: StructureDescriptor):
        self.name = self.__class__.__name__
        self._sample_messages = tuple(sample_messages)
        self._structure = structure

    @property
    def sample_messages(self):
        return self._sample_messages

    @property
    def structure(self) -> StructureDescriptor:
        return self._structure

    @classmethod
    @abstractmethod
    def make(cls, explanation, sample, overrides=None, timeout_checker=None, lines_to_sample=None):
        """Analyze ``sample`` and return a finder holding its structure."""
        pass

    @staticmethod
    def split_sample_lines(sample):
        """Split sample text into physical lines.

        One trailing empty string left by a final newline is dropped and a
        trailing carriage return is removed from every line.
        """
        lines = sample.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]
