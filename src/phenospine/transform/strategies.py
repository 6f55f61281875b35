"""
Normalisation strategies run on every extracted table before collection.

A strategy rewrites cell values in place through the table builder, so
each change is re-validated before it is committed. Strategies are
registered by name and selected from the pipeline configuration's
``strategies`` list, in order.

Built-in strategies:
    - ``alias_map``: apply each descriptor's alias map, then cast to its output dtype
    - ``fill_missing``: replace nulls by the descriptor's ``fill_missing`` literal
    - ``sex_mapping``: ``m``/``woman``/``diverse``/... to ``MALE``/``FEMALE``/``OTHER_SEX``
    - ``vital_status_mapping``: ``living``/``dead``/``no data``/... to the status names
    - ``age_to_iso8601``: whole-year ages (``12``) to ISO8601 durations (``P12Y``)
    - ``date_to_age``: dated onsets, encounters, deaths and procedures to ages
      relative to the patient's date of birth
    - ``hpo_normaliser`` / ``disease_normaliser``: term labels and synonyms to term ids
    - ``multi_hpo_col_expansion``: ``MultiHpoId`` free text to one
      observation-status column per HPO id

Examples:
    >>> for name in ["alias_map", "fill_missing"]:
    ...     get_strategy(name).transform(tables)

Tags:
    strategy, normalisation, alias, registry, phenospine
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Protocol, runtime_checkable

import phenopackets.schema.v2 as pps2
import polars as pl

from phenospine.config.context import Context, TimeElementType
from phenospine.config.table_context import Identifier, OutputDataType, SeriesContext
from phenospine.core.errors import ExpectedSingleValueError, MissingTermSourceError, ParsingError
from phenospine.core.logging import get_logger
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.extract.filters import Filter
from phenospine.transform.collecting.phenotypes import encode_phenotype_header
from phenospine.transform.parsing import is_iso8601_duration, iso8601_age, parse_bool, parse_datetime
from phenospine.transform.term_resolver import TermResolver

logger = get_logger(__name__)


@runtime_checkable
class Strategy(Protocol):
    """Rewrites values of a set of tables in place."""

    name: str

    def transform(self, tables: Sequence[ContextualizedTable]) -> None: ...


# =============================================================================
# REGISTRY
# =============================================================================

@dataclass(frozen=True)
class _Registration:
    factory: Callable[..., Strategy]
    needs_term_resolvers: bool = False


_registry: dict[str, _Registration] = {}


def register_strategy(
    name: str, *, needs_term_resolvers: bool = False
) -> Callable[[Callable[..., Strategy]], Callable[..., Strategy]]:
    """Decorator registering a strategy factory (usually the class itself).

    Factories registered with ``needs_term_resolvers`` are called with the
    run's term resolvers by domain; all others without arguments.
    """

    def decorator(factory: Callable[..., Strategy]) -> Callable[..., Strategy]:
        if name in _registry:
            raise ValueError(f"Strategy '{name}' is already registered")
        _registry[name] = _Registration(factory, needs_term_resolvers)
        logger.debug("strategy_registered", name=name)
        return factory

    return decorator


def get_strategy(name: str, term_resolvers: Mapping[str, TermResolver] | None = None) -> Strategy:
    if name not in _registry:
        available = ", ".join(sorted(_registry))
        raise KeyError(f"Strategy '{name}' not found. Available: {available}")
    registration = _registry[name]
    if registration.needs_term_resolvers:
        return registration.factory(term_resolvers or {})
    return registration.factory()


def list_strategies() -> list[str]:
    return sorted(_registry)


# =============================================================================
# HELPERS
# =============================================================================


def _as_text(column: pl.Series) -> list[str | None]:
    if column.dtype == pl.String:
        return column.to_list()
    return column.cast(pl.String).to_list()


def _cast_text(column: pl.Series, dtype: OutputDataType, table: str) -> pl.Series:
    """Cast a text column to ``dtype``, raising ParsingError on the first bad cell."""
    try:
        match dtype:
            case OutputDataType.STRING:
                return column
            case OutputDataType.BOOLEAN:
                values = [None if v is None else parse_bool(v) for v in column.to_list()]
                return pl.Series(column.name, values, dtype=pl.Boolean)
            case OutputDataType.DATE:
                return column.str.to_date(strict=True)
            case OutputDataType.DATETIME:
                return column.str.to_datetime(strict=True)
            case _:
                return column.cast(dtype.polars_dtype, strict=True)
    except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as exc:
        raise ParsingError(dtype.value, column.name, reason=str(exc)).with_context(
            table=table, column=column.name
        ) from exc
    except ParsingError as exc:
        raise exc.with_context(table=table, column=column.name)


# =============================================================================
# STRATEGIES
# =============================================================================


@register_strategy("alias_map")
class AliasMapStrategy:
    """Apply every descriptor's alias map to the columns it claims."""

    name = "alias_map"

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        for table in tables:
            builder = table.builder()
            changed = 0
            for sc in table.series_contexts:
                if sc.alias_map is None:
                    continue
                hash_map = sc.alias_map.hash_map
                for name in sc.identifier.resolve(table.data.columns):
                    mapped = [
                        None if value is None else hash_map.get(value, value)
                        for value in _as_text(table.data[name])
                    ]
                    text = pl.Series(name, mapped, dtype=pl.String)
                    builder.replace_col(name, _cast_text(text, sc.alias_map.output_dtype, table.name))
                    changed += 1
            if changed:
                builder.build()
                logger.info("alias_map_applied", table=table.name, columns=changed)


@register_strategy("fill_missing")
class FillMissingStrategy:
    """Replace nulls with the descriptor's ``fill_missing`` literal."""

    name = "fill_missing"

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        for table in tables:
            scs = table.filter_series_context().where_fill_missing(Filter.is_some()).collect()
            if not scs:
                continue
            builder = table.builder()
            for sc in scs:
                for name in sc.identifier.resolve(table.data.columns):
                    column = table.data[name]
                    if column.null_count() == 0:
                        continue
                    if column.dtype == pl.Null:
                        column = column.cast(pl.String)
                    fill = sc.fill_missing
                    if column.dtype == pl.String:
                        fill = str(fill)
                    builder.replace_col(name, column.fill_null(fill))
            builder.build()
            logger.info("missing_values_filled", table=table.name, descriptors=len(scs))


class MappingStrategy:
    """Map synonyms (trimmed, lower-cased) of one data context to canonical values.

    Values that are neither a synonym nor already canonical are collected
    and reported together in one ParsingError.
    """

    def __init__(
        self,
        name: str,
        synonym_map: Mapping[str, str],
        data_context: Context,
        header_context: Context = Context.NONE,
    ):
        self.name = name
        self._synonym_map = {k.strip().lower(): v for k, v in synonym_map.items()}
        for canonical in set(synonym_map.values()):
            self._synonym_map.setdefault(canonical.lower(), canonical)
        self._data_context = data_context
        self._header_context = header_context

    @property
    def synonym_map(self) -> dict[str, str]:
        return dict(self._synonym_map)

    def add_alias(self, alias: str, term: str) -> None:
        self._synonym_map[alias.strip().lower()] = term

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        unmapped: dict[str, None] = {}
        for table in tables:
            names = (
                table.filter_columns()
                .where_header_context(Filter.is_(self._header_context))
                .where_data_context(Filter.is_(self._data_context))
                .collect_names()
            )
            if not names:
                continue
            builder = table.builder()
            for name in names:
                mapped: list[str | None] = []
                for value in _as_text(table.data[name]):
                    if value is None or not value.strip():
                        mapped.append(value)
                        continue
                    alias = self._synonym_map.get(value.strip().lower())
                    if alias is None:
                        unmapped.setdefault(value, None)
                        mapped.append(value)
                    else:
                        mapped.append(alias)
                builder.replace_col(name, pl.Series(name, mapped, dtype=pl.String))
            builder.build()
            logger.info("mapping_applied", strategy=self.name, table=table.name, columns=names)

        if unmapped:
            raise ParsingError(
                str(self._data_context),
                ", ".join(unmapped),
                reason=f"no mapping; expected one of {sorted(set(self._synonym_map.values()))}",
            )


@register_strategy("sex_mapping")
def sex_mapping_strategy() -> MappingStrategy:
    male = pps2.Sex.Name(pps2.Sex.MALE)
    female = pps2.Sex.Name(pps2.Sex.FEMALE)
    other = pps2.Sex.Name(pps2.Sex.OTHER_SEX)
    unknown = pps2.Sex.Name(pps2.Sex.UNKNOWN_SEX)
    return MappingStrategy(
        "sex_mapping",
        {
            "m": male,
            "male": male,
            "man": male,
            "f": female,
            "female": female,
            "woman": female,
            "diverse": other,
            "intersex": other,
            "other": other,
            "unknown": unknown,
        },
        Context.SUBJECT_SEX,
    )


@register_strategy("vital_status_mapping")
def vital_status_mapping_strategy() -> MappingStrategy:
    status = pps2.VitalStatus.Status
    alive = status.Name(status.ALIVE)
    deceased = status.Name(status.DECEASED)
    unknown = status.Name(status.UNKNOWN_STATUS)
    return MappingStrategy(
        "vital_status_mapping",
        {
            "yes": alive,
            "living": alive,
            "alive": alive,
            "no": deceased,
            "dead": deceased,
            "deceased": deceased,
            "unknown": unknown,
            "no data": unknown,
        },
        Context.VITAL_STATUS,
    )


@register_strategy("age_to_iso8601")
class AgeToIso8601Strategy:
    """Rewrite whole-year ages (``"12"``) in age columns as ISO8601 durations (``"P12Y"``).

    Values that already are durations pass through. Anything else, or a
    number outside ``[min_age, max_age]``, is collected and reported in
    one ParsingError.
    """

    name = "age_to_iso8601"

    def __init__(self, min_age: int = 0, max_age: int = 150):
        self.min_age = min_age
        self.max_age = max_age

    def _years(self, value: str) -> int | None:
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not number.is_integer() or not self.min_age <= number <= self.max_age:
            return None
        return int(number)

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        invalid: dict[str, None] = {}
        for table in tables:
            names = (
                table.filter_columns()
                .where_header_context(Filter.is_none())
                .where_data_contexts_are(Context.all_time_based(TimeElementType.AGE))
                .collect_names()
            )
            if not names:
                continue
            builder = table.builder()
            for name in names:
                mapped: list[str | None] = []
                for value in _as_text(table.data[name]):
                    if value is None or not value.strip() or is_iso8601_duration(value):
                        mapped.append(value)
                        continue
                    years = self._years(value)
                    if years is None:
                        invalid.setdefault(value, None)
                        mapped.append(value)
                    else:
                        mapped.append(f"P{years}Y")
                builder.replace_col(name, pl.Series(name, mapped, dtype=pl.String))
            builder.build()
            logger.info("ages_converted", table=table.name, columns=names)

        if invalid:
            raise ParsingError(
                "Age",
                ", ".join(invalid),
                reason=f"expected an ISO8601 duration or a whole number of years in [{self.min_age}, {self.max_age}]",
            )


@register_strategy("date_to_age")
class DateToAgeStrategy:
    """Turn dated time elements into the patient's age at that date.

    Dates of birth are gathered per subject across all tables. Every
    column tagged with the Date variant of onset, last encounter, time of
    death or time of procedure is rewritten as an ISO8601 age and its
    descriptor switched to the Age variant. Dates that do not parse,
    precede the date of birth or belong to a patient without one are
    reported together in one ParsingError.
    """

    name = "date_to_age"

    def _dates_of_birth(self, tables: Sequence[ContextualizedTable]) -> dict[str, date]:
        births: dict[str, date] = {}
        for table in tables:
            names = (
                table.filter_columns()
                .where_header_context(Filter.is_none())
                .where_data_context(Context.DATE_OF_BIRTH)
                .collect_names()
            )
            if not names:
                continue
            subjects = _as_text(table.get_subject_id_col())
            for name in names:
                for subject, value in zip(subjects, _as_text(table.data[name])):
                    if value is None or not value.strip():
                        continue
                    parsed = parse_datetime(value)
                    if parsed is None:
                        raise ParsingError("DateOfBirth", value).with_context(
                            table=table.name, patient_id=subject, column=name
                        )
                    birth = parsed.date()
                    if births.setdefault(subject, birth) != birth:
                        raise ExpectedSingleValueError(
                            table.name, subject, [Context.DATE_OF_BIRTH], [births[subject], birth]
                        )
        return births

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        date_contexts = Context.all_time_based(TimeElementType.DATE)
        births: dict[str, date] | None = None
        invalid: dict[str, None] = {}

        for table in tables:
            scs = (
                table.filter_series_context()
                .where_header_context(Filter.is_none())
                .where_data_contexts_are(date_contexts)
                .collect()
            )
            if not scs:
                continue
            if births is None:
                births = self._dates_of_birth(tables)

            subjects = _as_text(table.get_subject_id_col())
            builder = table.builder()
            replaced: dict[Context, Context] = {}
            for sc in scs:
                replaced[sc.data_context] = Context(sc.data_context.kind, time_element=TimeElementType.AGE)
                for name in sc.identifier.resolve(table.data.columns):
                    mapped: list[str | None] = []
                    for subject, value in zip(subjects, _as_text(table.data[name])):
                        if value is None or not value.strip():
                            mapped.append(None)
                            continue
                        parsed = parse_datetime(value)
                        birth = births.get(subject)
                        if parsed is None or birth is None or parsed.date() < birth:
                            invalid.setdefault(f"{subject}: {value}", None)
                            mapped.append(value)
                            continue
                        mapped.append(iso8601_age(birth, parsed.date()))
                    builder.replace_col(name, pl.Series(name, mapped, dtype=pl.String))
            builder.replace_data_contexts(replaced).build()
            logger.info("dates_converted_to_ages", table=table.name, descriptors=len(scs))

        if invalid:
            raise ParsingError(
                "Age",
                ", ".join(invalid),
                reason="date does not parse, precedes the date of birth, or the patient has no date of birth",
            )


class OntologyNormaliserStrategy:
    """Replace labels and synonyms in one data context by their term ids.

    Values that already are ids of the domain pass through. Values no
    source of the domain knows are reported together in one ParsingError.
    """

    def __init__(
        self,
        name: str,
        resolver: TermResolver | None,
        domain: str,
        data_context: Context,
    ):
        self.name = name
        self._resolver = resolver
        self._domain = domain
        self._data_context = data_context

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        unresolved: dict[str, None] = {}
        for table in tables:
            names = (
                table.filter_columns()
                .where_header_context(Filter.is_none())
                .where_data_context(self._data_context)
                .collect_names()
            )
            if not names:
                continue
            if self._resolver is None or self._resolver.is_empty():
                raise MissingTermSourceError(self._domain).with_context(table=table.name)

            builder = table.builder()
            for name in names:
                mapped: list[str | None] = []
                for value in _as_text(table.data[name]):
                    if value is None or not value.strip():
                        mapped.append(value)
                        continue
                    found = self._resolver.query(value)
                    if found is None:
                        unresolved.setdefault(value, None)
                        mapped.append(value)
                    else:
                        mapped.append(found[0].id)
                builder.replace_col(name, pl.Series(name, mapped, dtype=pl.String))
            builder.build()
            logger.info("terms_normalised", strategy=self.name, table=table.name, columns=names)

        if unresolved:
            raise ParsingError(
                str(self._data_context),
                ", ".join(unresolved),
                reason=f"no {self._domain} term found",
            )


@register_strategy("hpo_normaliser", needs_term_resolvers=True)
def hpo_normaliser_strategy(term_resolvers: Mapping[str, TermResolver]) -> OntologyNormaliserStrategy:
    return OntologyNormaliserStrategy("hpo_normaliser", term_resolvers.get("hpo"), "hpo", Context.HPO_LABEL_OR_ID)


@register_strategy("disease_normaliser", needs_term_resolvers=True)
def disease_normaliser_strategy(term_resolvers: Mapping[str, TermResolver]) -> OntologyNormaliserStrategy:
    return OntologyNormaliserStrategy(
        "disease_normaliser", term_resolvers.get("disease"), "disease", Context.DISEASE_LABEL_OR_ID
    )


HPO_ID_PATTERN = re.compile(r"HP:\d{7}", re.IGNORECASE)


@register_strategy("multi_hpo_col_expansion")
class MultiHpoColExpansionStrategy:
    """Expand free-text columns listing several HPO ids into one column per id.

    For every building block, the ids found in its ``MultiHpoId`` columns
    become observation-status columns named ``HP:0001250`` (or
    ``HP:0001250#block``): true on rows that list the id, null elsewhere.
    The source columns and their descriptors are dropped.
    """

    name = "multi_hpo_col_expansion"

    def transform(self, tables: Sequence[ContextualizedTable]) -> None:
        for table in tables:
            scs = (
                table.filter_series_context()
                .where_header_context(Filter.is_none())
                .where_data_context(Context.MULTI_HPO_ID)
                .collect()
            )
            if not scs:
                continue

            by_block: dict[str | None, list[SeriesContext]] = {}
            for sc in scs:
                by_block.setdefault(sc.building_block_id, []).append(sc)

            builder = table.builder().drop_scs_alongside_cols(scs)
            created = 0
            for block, block_scs in by_block.items():
                rows: list[set[str]] = [set() for _ in range(table.data.height)]
                found: dict[str, None] = {}
                for sc in block_scs:
                    for name in sc.identifier.resolve(table.data.columns):
                        for row, value in enumerate(_as_text(table.data[name])):
                            for hpo_id in HPO_ID_PATTERN.findall(value or ""):
                                hpo_id = hpo_id.upper()
                                rows[row].add(hpo_id)
                                found.setdefault(hpo_id, None)
                if not found:
                    continue
                columns = [
                    pl.Series(
                        encode_phenotype_header(hpo_id, block),
                        [True if hpo_id in listed else None for listed in rows],
                        dtype=pl.Boolean,
                    )
                    for hpo_id in found
                ]
                builder.insert_sc_alongside_cols(
                    SeriesContext(
                        Identifier.multi([column.name for column in columns]),
                        header_context=Context.HPO_LABEL_OR_ID,
                        data_context=Context.OBSERVATION_STATUS,
                        building_block_id=block,
                    ),
                    columns,
                )
                created += len(columns)
            builder.build()
            logger.info("multi_hpo_columns_expanded", table=table.name, columns=created)


__all__ = [
    "Strategy",
    "register_strategy",
    "get_strategy",
    "list_strategies",
    "AliasMapStrategy",
    "FillMissingStrategy",
    "MappingStrategy",
    "sex_mapping_strategy",
    "vital_status_mapping_strategy",
    "AgeToIso8601Strategy",
    "DateToAgeStrategy",
    "OntologyNormaliserStrategy",
    "hpo_normaliser_strategy",
    "disease_normaliser_strategy",
    "HPO_ID_PATTERN",
    "MultiHpoColExpansionStrategy",
]
