"""Identity of a test case within a suite."""

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class TestPath:
    """A (group name, index) pair naming one test case.

    Paths order by group name, then by index.
    """

    __test__ = False

    name: str
    index: int

    def display(self) -> str:
        """Short display form, e.g. ``math.001``."""
        return f"{self.name}.{self.index:03d}"

    def file_key(self) -> str:
        """Filesystem-safe key, also used as the output file name.

        Two paths whose group names only differ by case share a key.
        """
        return f"{self.name.lower()}.{self.index:03d}.output"

    def __str__(self) -> str:
        return self.display()
