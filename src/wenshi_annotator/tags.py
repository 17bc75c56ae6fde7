from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

# Sentence members, function words, other parts of speech.
GROUPS = ("ЧлПред", "Служ", "ЧасРеч")

# Codes, labels and aliases must survive a trip through a marker body.
TOKEN_RE = re.compile(r"[^\W_]+")


@dataclass(frozen=True, slots=True)
class TagDescriptor:
    """A linguistic tag: machine code, short display label and grouping.

    ``aliases`` are extra spellings accepted when parsing; output always uses
    ``label``.
    """

    code: str
    label: str
    description: str
    group: str
    aliases: tuple[str, ...] = ()


DEFAULT_TAGS: tuple[TagDescriptor, ...] = (
    TagDescriptor("subj", "П", "Подлежащее", "ЧлПред"),
    TagDescriptor("pred", "Ск", "Сказуемое", "ЧлПред"),
    TagDescriptor("obj", "Д", "Дополнение", "ЧлПред"),
    TagDescriptor("advm", "Об", "Обстоятельство", "ЧлПред"),
    TagDescriptor("attr", "Оп", "Определение", "ЧлПред"),
    TagDescriptor("pattr", "Оск", "Определение к сказуемому", "ЧлПред"),
    TagDescriptor("nom", "ИЧ", "Именная часть сказуемого", "ЧлПред"),
    TagDescriptor("prep", "Пр", "Предлог", "Служ"),
    TagDescriptor("conj", "Сз", "Союз", "Служ"),
    TagDescriptor("epart", "Вч", "Выделительная частица", "Служ"),
    TagDescriptor("mpart", "Мч", "Модальная частица", "Служ"),
    TagDescriptor("neg", "Отр", "Отрицание", "Служ"),
    TagDescriptor("cop", "Св", "Связка", "Служ"),
    # Older files spell the label with a Latin C.
    TagDescriptor("n", "Сущ", "Существительное", "ЧасРеч", aliases=("Cущ",)),
    TagDescriptor("v", "Гл", "Глагол", "ЧасРеч"),
    TagDescriptor("adj", "Прл", "Прилагательное", "ЧасРеч"),
    TagDescriptor("adv", "Нар", "Наречие", "ЧасРеч"),
    TagDescriptor("pron", "Мст", "Местоимение", "ЧасРеч"),
    TagDescriptor("num", "Чсл", "Числительное", "ЧасРеч"),
    TagDescriptor("intrj", "Мж", "Междометие", "ЧасРеч"),
)


class TagRegistry:
    """Read-only lookup over a fixed set of tag descriptors."""

    def __init__(self, descriptors: Iterable[TagDescriptor]) -> None:
        self._by_code: dict[str, TagDescriptor] = {}
        self._by_label: dict[str, str] = {}
        self._by_folded_label: dict[str, str] = {}
        for descriptor in descriptors:
            if descriptor.code in self._by_code:
                raise ValueError(f"Duplicate tag code '{descriptor.code}'.")
            if descriptor.group not in GROUPS:
                raise ValueError(
                    f"Tag '{descriptor.code}' has unknown group '{descriptor.group}'."
                )
            for token in (descriptor.code, descriptor.label, *descriptor.aliases):
                if not TOKEN_RE.fullmatch(token):
                    raise ValueError(
                        f"Tag '{descriptor.code}' uses '{token}'; codes, labels and "
                        "aliases may contain only letters and digits."
                    )
            self._by_code[descriptor.code] = descriptor
            for label in (descriptor.label, *descriptor.aliases):
                self._by_label.setdefault(label, descriptor.code)
                self._by_folded_label.setdefault(label.casefold(), descriptor.code)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __len__(self) -> int:
        return len(self._by_code)

    def lookup(self, code: str) -> TagDescriptor | None:
        return self._by_code.get(code)

    def lookup_by_label(self, label: str, case_insensitive: bool = True) -> str | None:
        if case_insensitive:
            return self._by_folded_label.get(label.casefold())
        return self._by_label.get(label)

    def all_codes(self) -> tuple[str, ...]:
        return tuple(self._by_code)

    def codes_in_group(self, group: str) -> tuple[str, ...]:
        return tuple(
            code for code, tag in self._by_code.items() if tag.group == group
        )

    def resolve(self, token: str) -> str | None:
        """Resolve a notation token to a tag code: exact code first, then label."""
        if token in self._by_code:
            return token
        return self.lookup_by_label(token, case_insensitive=True)

    def label_for(self, code: str) -> str:
        """Return the display label for ``code``, falling back to the code itself."""
        descriptor = self._by_code.get(code)
        return descriptor.label if descriptor else code

    def labels_for(self, codes: Iterable[str]) -> str:
        return ",".join(self.label_for(code) for code in codes)


def registry_from_dicts(entries: Iterable[Mapping[str, str]]) -> TagRegistry:
    """Build a registry from ``{code, label, description, group, aliases}`` mappings."""
    descriptors = []
    for entry in entries:
        try:
            descriptors.append(
                TagDescriptor(
                    code=str(entry["code"]),
                    label=str(entry["label"]),
                    description=str(entry.get("description", "")),
                    group=str(entry["group"]),
                    aliases=tuple(str(alias) for alias in entry.get("aliases", ())),
                )
            )
        except KeyError as exc:
            raise ValueError(f"Tag entry missing field {exc.args[0]!r}.") from exc
    return TagRegistry(descriptors)


DEFAULT_REGISTRY = TagRegistry(DEFAULT_TAGS)
