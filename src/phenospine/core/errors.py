"""
Structured error types for phenospine.

Every failure in a compilation run surfaces as one typed exception carrying
enough metadata to name the table, patient and semantic tag involved. The
hierarchy mirrors the stages of a run: table validation, typed parsing,
term resolution, cardinality checks and genetic domain logic.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure kind, grouped by category
    - **Attributable:** Errors carry table, patient, column and tag context
    - **Fail Fast:** No local recovery; a single error aborts the run
    - **Error Chaining:** Underlying exceptions are preserved as ``__cause__``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                     PhenoSpineError                              │
        │               (category, context, cause)                         │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TableValidationError     ParsingError        ResolutionError    │
        │  (VALIDATION)             (PARSE)             (RESOLUTION)       │
        │       │                                            │             │
        │  DuplicateColumnOwnership                    TermNotFound        │
        │  SubjectIdColumn                             MissingTermSource   │
        │  SubjectIdGap                                                    │
        │  DanglingSeriesContext    CardinalityError    DomainLogicError   │
        │  OrphanedColumns          (CARDINALITY)       (DOMAIN)           │
        │                                │                   │             │
        │                      ExpectedAtMostNLinked   InvalidGeneVariant  │
        │                      ExpectedSingleValue     ContradictoryAllelic│
        │                      AmbiguousPhenotypeData  GeneMismatch        │
        │                                              VariantValidation   │
        │                                                                  │
        │  ConfigError   SourceError   LoadError   PipelineError           │
        │  (CONFIG)      (SOURCE)      (LOAD)      (PIPELINE)              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    Adding attribution to an error raised deep inside a collector:

    >>> error = ParsingError("Sex", "maybe")
    >>> error.with_context(table="patients", patient_id="P001")
    ParsingError(...)
    >>> error.context.table
    'patients'

Guardrails:
    ❌ DON'T: Raise bare ValueError for data problems
    ✅ DO: Raise the PhenoSpineError subclass naming the failure

    ❌ DON'T: Catch and default a parsing failure
    ✅ DO: Let it propagate so the run aborts with one attributable error

Tags:
    error-handling, exception-hierarchy, error-context, phenospine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    VALIDATION = "VALIDATION"     # Table invariants
    PARSE = "PARSE"               # Typed value conversion
    RESOLUTION = "RESOLUTION"     # Ontology term lookups
    CARDINALITY = "CARDINALITY"   # Too many linked columns or values
    DOMAIN = "DOMAIN"             # Genetics decision logic
    CONFIG = "CONFIG"             # Missing term sources, bad pipeline files
    SOURCE = "SOURCE"             # Reading input tables
    LOAD = "LOAD"                 # Writing output
    PIPELINE = "PIPELINE"         # Orchestration failures
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    The collector broker fills ``table``, ``patient_id`` and ``collector``
    on the way out; lower layers set ``column`` and ``tag`` where they know
    them. Anything else lands in ``metadata``.

    Attributes:
        table: Name of the table (or patient slice) being processed
        patient_id: Subject identifier
        column: Physical column name
        tag: Semantic tag (rendered Context) involved
        collector: Name of the collector that was running
        source_name: Data source path or name
        metadata: Additional key-value pairs
    """

    table: str | None = None
    patient_id: str | None = None
    column: str | None = None
    tag: str | None = None
    collector: str | None = None
    source_name: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "patient_id", "column", "tag", "collector", "source_name"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class PhenoSpineError(Exception):
    """
    Base exception for all phenospine errors.

    Subclasses set ``default_category``. Context can be attached after
    construction with :meth:`with_context`, which only fills fields that are
    still empty so the innermost (most specific) attribution wins.

    Examples:
        >>> error = PhenoSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'PhenoSpineError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> PhenoSpineError:
        """
        Add context to this error (fluent API).

        Values already set are kept.

        Usage:
            raise ParsingError("Sex", raw).with_context(column="sex")
        """
        for key, value in kwargs.items():
            if value is None:
                continue
            if key != "metadata" and hasattr(self.context, key):
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        context_dict = self.context.to_dict()
        if not context_dict:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in context_dict.items())
        return f"{self.message} [{details}]"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TABLE VALIDATION ERRORS
# =============================================================================


class TableValidationError(PhenoSpineError):
    """A contextualized table breaks one of its structural invariants."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, table: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.table = table
        self.context.table = table


class DuplicateColumnOwnershipError(TableValidationError):
    """A physical column is claimed by more than one series context."""

    def __init__(self, table: str, columns: Sequence[str]):
        self.columns = list(columns)
        names = ", ".join(repr(c) for c in self.columns)
        super().__init__(
            f"Columns claimed by more than one SeriesContext in table {table}: {names}",
            table=table,
        )


class SubjectIdColumnError(TableValidationError):
    """Zero or several columns carry the SubjectId data context."""

    def __init__(self, table: str, n_found: int):
        self.n_found = n_found
        super().__init__(
            f"Found more than one or no column with data context SubjectId in table {table}",
            table=table,
        )


class SubjectIdGapError(TableValidationError):
    """The subject id column has missing values."""

    def __init__(self, table: str, column: str):
        super().__init__(f"SubjectID column in table {table} has gaps.", table=table)
        self.context.column = column


class DanglingSeriesContextError(TableValidationError):
    """Series contexts whose identifier matches no column."""

    def __init__(self, table: str, identifiers: Sequence[str]):
        self.identifiers = list(identifiers)
        super().__init__(
            f"SeriesContexts in table {table} match no column: {', '.join(self.identifiers)}",
            table=table,
        )


class OrphanedColumnsError(TableValidationError):
    """Columns inserted alongside a series context that does not identify them."""

    def __init__(self, table: str, columns: Sequence[str], identifier: str):
        self.columns = list(columns)
        super().__init__(
            f"Columns {', '.join(self.columns)} are not matched by identifier {identifier} "
            f"in table {table}",
            table=table,
        )


# =============================================================================
# PARSING ERRORS
# =============================================================================


class ParsingError(PhenoSpineError):
    """A raw value could not be converted into a domain type."""

    default_category = ErrorCategory.PARSE

    def __init__(self, what: str, value: Any, *, reason: str | None = None):
        self.what = what
        self.value = value
        message = f"Could not parse {what} from value {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["what"] = self.what
        result["value"] = repr(self.value)
        return result


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================


class ResolutionError(PhenoSpineError):
    """A term could not be resolved against the configured ontologies."""

    default_category = ErrorCategory.RESOLUTION


class TermNotFoundError(ResolutionError):
    """No term source of the domain resolves the query."""

    def __init__(self, domain: str, query: str):
        self.domain = domain
        self.query = query
        super().__init__(f"Could not resolve {domain} term {query!r}")


class MissingTermSourceError(ResolutionError):
    """The domain has no registered term sources."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Missing term source for domain {domain}")


# =============================================================================
# CARDINALITY ERRORS
# =============================================================================


class CardinalityError(PhenoSpineError):
    """More values or columns were found than the data model allows."""

    default_category = ErrorCategory.CARDINALITY


class ExpectedAtMostNLinkedColumnsError(CardinalityError):
    """A building block links too many columns for the requested contexts."""

    def __init__(
        self,
        table: str,
        building_block_id: str,
        contexts: Sequence[Any],
        n_found: int,
        n_expected: int = 1,
    ):
        self.building_block_id = building_block_id
        self.contexts = list(contexts)
        self.n_found = n_found
        self.n_expected = n_expected
        rendered = ", ".join(str(c) for c in self.contexts)
        super().__init__(
            f"Expected at most {n_expected} linked column(s) with contexts [{rendered}] "
            f"in building block {building_block_id} of table {table}, found {n_found}"
        )
        self.context.table = table


class ExpectedSingleValueError(CardinalityError):
    """Several distinct values were found where exactly one was required."""

    def __init__(self, table: str, patient_id: str, contexts: Sequence[Any], values: Sequence[Any] = ()):
        self.contexts = list(contexts)
        self.values = list(values)
        rendered = ", ".join(str(c) for c in self.contexts)
        super().__init__(
            f"Expected a single value for [{rendered}] for patient {patient_id} in table {table}, "
            f"found {self.values}"
        )
        self.context.table = table
        self.context.patient_id = patient_id


class AmbiguousPhenotypeDataError(CardinalityError):
    """A phenotype-in-header column holds conflicting status/onset pairs."""

    def __init__(self, table: str, patient_id: str, phenotype: str):
        self.phenotype = phenotype
        super().__init__(
            f"Ambiguous phenotype data for patient {patient_id}: "
            f"phenotype {phenotype} in table {table} has more than one distinct status/onset pair"
        )
        self.context.table = table
        self.context.patient_id = patient_id


# =============================================================================
# GENETICS DOMAIN ERRORS
# =============================================================================


class DomainLogicError(PhenoSpineError):
    """Genetic data contradicts the interpretation rules."""

    default_category = ErrorCategory.DOMAIN


class InvalidGeneVariantCountError(DomainLogicError):
    """Unsupported combination of gene and variant counts on one row."""

    def __init__(self, n_genes: int, n_variants: int):
        self.n_genes = n_genes
        self.n_variants = n_variants
        super().__init__(
            f"Invalid quantity of genes {n_genes} and variants {n_variants}. "
            "Could not interpret as PathogenicGeneVariantData."
        )


class ContradictoryAllelicDataError(DomainLogicError):
    """Allele count, chromosome and chromosomal sex do not fit together."""

    def __init__(self, allele_count: int, chromosome: str, sex: str):
        self.allele_count = allele_count
        self.chromosome = chromosome
        self.sex = sex
        super().__init__(
            f"Contradictory allelic data: {allele_count} allele(s) on chromosome {chromosome} "
            f"for chromosomal sex {sex}"
        )


class GeneMismatchError(DomainLogicError):
    """The gene of a validated variant differs from the row's gene."""

    def __init__(self, expected: str, found: Sequence[str], variant: str):
        self.expected = expected
        self.found = list(found)
        self.variant = variant
        super().__init__(
            f"Gene {expected} does not match variant {variant} (variant gene: {', '.join(self.found)})"
        )


class VariantValidationError(DomainLogicError):
    """A variant expression could not be validated."""

    def __init__(self, variant: str, reason: str):
        self.variant = variant
        self.reason = reason
        super().__init__(f"Could not validate variant {variant}: {reason}")


# =============================================================================
# CONFIGURATION, SOURCE, LOAD AND PIPELINE ERRORS
# =============================================================================


class ConfigError(PhenoSpineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class SourceError(PhenoSpineError):
    """Error reading an input table."""

    default_category = ErrorCategory.SOURCE


class SourceNotFoundError(SourceError):
    """Input file not found."""


class LoadError(PhenoSpineError):
    """Error writing output records."""

    default_category = ErrorCategory.LOAD

    def __init__(self, message: str, *, entity_id: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.entity_id = entity_id


class PipelineError(PhenoSpineError):
    """Pipeline orchestration error."""

    default_category = ErrorCategory.PIPELINE


class CollectorError(PipelineError):
    """A collector could not run (unknown name, bad registration)."""


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "PhenoSpineError",
    # Validation
    "TableValidationError",
    "DuplicateColumnOwnershipError",
    "SubjectIdColumnError",
    "SubjectIdGapError",
    "DanglingSeriesContextError",
    "OrphanedColumnsError",
    # Parsing
    "ParsingError",
    # Resolution
    "ResolutionError",
    "TermNotFoundError",
    "MissingTermSourceError",
    # Cardinality
    "CardinalityError",
    "ExpectedAtMostNLinkedColumnsError",
    "ExpectedSingleValueError",
    "AmbiguousPhenotypeDataError",
    # Domain
    "DomainLogicError",
    "InvalidGeneVariantCountError",
    "ContradictoryAllelicDataError",
    "GeneMismatchError",
    "VariantValidationError",
    # Config / source / load / pipeline
    "ConfigError",
    "SourceError",
    "SourceNotFoundError",
    "LoadError",
    "PipelineError",
    "CollectorError",
]
