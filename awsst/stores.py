"""Common behaviour for the stores backed by files in ~/.aws."""

from .codec import read_sections, write_sections


class FileStore:
    """
    A collection of named entities persisted as one file.

    Subclasses set ``file_name`` and convert between parsed sections and
    their own entity types in ``load`` and ``to_raw``.
    """

    file_name = None
    private = False

    def __init__(self, sections=None):
        self.load(sections or {})

    @classmethod
    def read(cls):
        """Load the store from its file, creating the file if needed."""
        return cls(read_sections(cls.file_name))

    def write(self):
        """Rewrite the whole file from the in-memory entities."""
        write_sections(self.file_name, self.to_raw(), private=self.private)

    def load(self, sections):
        raise NotImplementedError

    def to_raw(self):
        raise NotImplementedError

    def add(self, item):
        raise NotImplementedError

    def remove(self, name):
        raise NotImplementedError
