from typing import Iterator, TypeVar

T = TypeVar("T")


def chunks(ls: list[T], size: int) -> Iterator[list[T]]:
    """Split a list into consecutive batches of at most `size` items"""
    if size <= 0:
        raise ValueError(f"Batch size must be positive, got {size}")
    for i in range(0, len(ls), size):
        yield ls[i : i + size]


def yes_or_no(question: str) -> bool:
    """
    Ask `question` until the answer starts with y or n.
    An empty answer counts as no.
    """
    while True:
        reply = input(f"{question} [y/N]: ").strip().lower()
        if not reply or reply.startswith("n"):
            return False
        if reply.startswith("y"):
            return True
