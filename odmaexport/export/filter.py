import re
from typing import Iterable, List, Pattern, Set, Union

from ..config import Config


class ExclusionFilter:
    """
    Decides whether a referenced object is followed and exported.

    An excluded id always wins. Otherwise the qualified class name is matched
    against the class patterns; the whole name has to match.
    """

    def __init__(
        self,
        exclude_classes: Iterable[Union[str, Pattern]] = (),
        exclude_ids: Iterable[str] = (),
    ):
        self.exclude_classes: List[Pattern] = [
            p if isinstance(p, re.Pattern) else re.compile(p)
            for p in exclude_classes
        ]
        self.exclude_ids: Set[str] = set(exclude_ids)

    @classmethod
    def from_config(cls, config: Config) -> "ExclusionFilter":
        return cls(config.exclude_classes, config.exclude_ids)

    def is_followable(self, ref_id: str, class_qname: str) -> bool:
        if ref_id in self.exclude_ids:
            return False
        class_qname = str(class_qname)
        return not any(p.fullmatch(class_qname) for p in self.exclude_classes)
