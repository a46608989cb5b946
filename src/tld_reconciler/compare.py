"""
Cross-source comparators.

Set differences between one source's labels and the Root Zone Database's
labels. Labels are compared exactly as each source writes them: a Unicode
label in the registry and its xn-- form in another source show up as a
mismatch on both sides. That surfaces real encoding differences between
the feeds and is kept as-is.
"""

from typing import Iterable

from .models import ComparisonResult, RegistryEntry


def compare(source_labels: Iterable[str], registry_entries: list[RegistryEntry]) -> ComparisonResult:
    """
    Compare a source's labels against the registry's labels.

    Counts are over distinct labels. Registry-only labels are additionally
    grouped by the category their registry entry carries.

    Args:
        source_labels: Labels from the TLD list or the bootstrap file
        registry_entries: Parsed Root Zone Database entries

    Returns:
        ComparisonResult with sorted difference lists
    """
    source_set = set(source_labels)
    category_of: dict[str, str] = {}
    for entry in registry_entries:
        category_of.setdefault(entry.label, entry.category.value)
    registry_set = set(category_of)

    only_in_source = sorted(source_set - registry_set)
    only_in_registry = sorted(registry_set - source_set)

    by_category: dict[str, list[str]] = {}
    for label in only_in_registry:
        by_category.setdefault(category_of[label], []).append(label)

    return ComparisonResult(
        source_count=len(source_set),
        registry_count=len(registry_set),
        in_both=len(source_set) - len(only_in_source),
        only_in_source=only_in_source,
        only_in_registry=only_in_registry,
        only_in_registry_by_category=by_category,
    )


def compare_bootstrap_vs_registry(
    bootstrap_labels: Iterable[str],
    registry_entries: list[RegistryEntry],
) -> ComparisonResult:
    """Compare RDAP bootstrap labels with the Root Zone Database."""
    return compare(bootstrap_labels, registry_entries)


def compare_tld_list_vs_registry(
    tld_labels: Iterable[str],
    registry_entries: list[RegistryEntry],
) -> ComparisonResult:
    """Compare the plain-text TLD list with the Root Zone Database."""
    return compare(tld_labels, registry_entries)
