"""
Phenopacket builder: idempotent upserts of per-patient phenopackets.

The builder owns one ``Phenopacket`` per subject for the duration of a
run. Collectors call its ``upsert_*`` / ``insert_*`` operations with raw
cell values; the builder parses them, resolves terms through the term
resolver of the right domain, registers every resource it used, and
finally stamps and returns snapshots from :meth:`PhenopacketBuilder.build`.

Manifesto:
    - **Idempotent:** The same call twice leaves the same state as once
    - **Keyed upserts:** Phenotypic features by term id, interpretations
      by ``{phenopacket_id}-{disease_id}``, vital status overwritten whole
    - **Provenance:** Each resolved term registers its resource exactly once
      (case-insensitive on id and version)
    - **Fail fast:** Parse and resolution errors propagate unchanged

Architecture:
    ::

        Collector ──upsert_*/insert_*──▶ PhenopacketBuilder
                                             │
                         ┌───────────────────┼──────────────────────┐
                         ▼                   ▼                      ▼
                  TermResolver[domain]   GeneResolver /      ResourceResolver
                  hpo, disease, unit,    VariantValidator    (MetaData.resources)
                  assay, qualitative,        │
                  procedure, anatomy,        ▼
                  treatment              decide_zygosity()
                                             │
                                             ▼
                                     build() ─▶ list[Phenopacket] (sorted by id)

Examples:
    >>> builder = PhenopacketBuilder(BuilderMetaData("cohort"), {"hpo": TermResolver("hpo", [hpo])})
    >>> builder.upsert_phenotypic_feature("P001", "Fractured nose")
    >>> builder.upsert_phenotypic_feature("P001", "Spasmus nutans", onset="P12Y5M28D")
    >>> [pp.id for pp in builder.build()]
    ['cohort-P001']

Tags:
    phenopacket, builder, upsert, provenance, phenospine
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import phenopackets.schema.v2 as pps2
from google.protobuf.timestamp_pb2 import Timestamp

from phenospine.core.errors import MissingTermSourceError
from phenospine.core.logging import get_logger
from phenospine.ontology.genomics import GeneResolver, HgvsVariant, VariantValidator
from phenospine.ontology.resource_references import ResourceRef
from phenospine.ontology.resources import ResourceResolver
from phenospine.transform.gene_variant import GeneVariantKind, PathogenicGeneVariantData
from phenospine.transform.parsing import (
    parse_sex,
    parse_time_element,
    parse_timestamp,
    parse_vital_status,
)
from phenospine.transform.term_resolver import TermResolver
from phenospine.transform.zygosity import ChromosomalSex, decide_zygosity

logger = get_logger(__name__)

PHENOPACKET_SCHEMA_VERSION = "2.0"
DEFAULT_GENO_VERSION = "2025-07-25"

TERM_DOMAINS = (
    "hpo",
    "disease",
    "unit",
    "assay",
    "qualitative",
    "procedure",
    "anatomy",
    "treatment",
)


@dataclass
class BuilderMetaData:
    """Who built the cohort, and what it is called."""

    cohort_name: str = "cohort"
    created_by: str = "phenospine"
    submitted_by: str = "phenospine"


class PhenopacketBuilder:
    """Accumulates phenopackets keyed by cohort-prefixed subject id."""

    def __init__(
        self,
        meta_data: BuilderMetaData,
        term_resolvers: Mapping[str, TermResolver] | None = None,
        *,
        gene_resolver: GeneResolver | None = None,
        variant_validator: VariantValidator | None = None,
        resource_resolver: ResourceResolver | None = None,
        geno_version: str = DEFAULT_GENO_VERSION,
    ):
        self._meta_data = meta_data
        self._resolvers = {
            domain: (term_resolvers or {}).get(domain) or TermResolver(domain)
            for domain in TERM_DOMAINS
        }
        self._gene_resolver = gene_resolver
        self._variant_validator = variant_validator
        self._resource_resolver = resource_resolver or ResourceResolver()
        self._geno_ref = ResourceRef.geno(geno_version)
        self._phenopackets: dict[str, pps2.Phenopacket] = {}

    @property
    def meta_data(self) -> BuilderMetaData:
        return self._meta_data

    def term_resolver(self, domain: str) -> TermResolver:
        return self._resolvers[domain]

    def __len__(self) -> int:
        return len(self._phenopackets)

    # =========================================================================
    # IDS, LOOKUPS AND PROVENANCE
    # =========================================================================

    def generate_phenopacket_id(self, patient_id: str) -> str:
        cohort = self._meta_data.cohort_name
        if patient_id.startswith(cohort):
            return patient_id
        return f"{cohort}-{patient_id}"

    def get(self, patient_id: str) -> pps2.Phenopacket | None:
        """Live (unstamped) phenopacket of a patient, if any."""
        return self._phenopackets.get(self.generate_phenopacket_id(patient_id))

    def _get_or_create_phenopacket(self, patient_id: str) -> pps2.Phenopacket:
        phenopacket_id = self.generate_phenopacket_id(patient_id)
        phenopacket = self._phenopackets.get(phenopacket_id)
        if phenopacket is None:
            phenopacket = pps2.Phenopacket(id=phenopacket_id)
            self._phenopackets[phenopacket_id] = phenopacket
        return phenopacket

    def _get_or_create_subject(self, patient_id: str) -> pps2.Individual:
        phenopacket = self._get_or_create_phenopacket(patient_id)
        if not phenopacket.HasField("subject"):
            phenopacket.subject.id = patient_id
        return phenopacket.subject

    def _resolve(self, domain: str, raw: str) -> tuple[pps2.OntologyClass, ResourceRef]:
        return self._resolvers[domain].resolve(raw)

    def ensure_resource(self, patient_id: str, ref: ResourceRef) -> None:
        """Register ``ref`` on the patient's metadata unless already present."""
        phenopacket = self._get_or_create_phenopacket(patient_id)
        for resource in phenopacket.meta_data.resources:
            if (
                resource.id.lower() == ref.prefix_id.lower()
                and resource.version.lower() == ref.version.lower()
            ):
                return
        phenopacket.meta_data.resources.append(self._resource_resolver.resolve(ref))
        logger.debug("resource_registered", phenopacket_id=phenopacket.id, resource=str(ref))

    # =========================================================================
    # INDIVIDUAL
    # =========================================================================

    def upsert_individual(
        self,
        patient_id: str,
        date_of_birth: str | None = None,
        time_at_last_encounter: str | None = None,
        sex: str | None = None,
    ) -> None:
        subject = self._get_or_create_subject(patient_id)
        if date_of_birth is not None:
            subject.date_of_birth.CopyFrom(parse_timestamp(date_of_birth))
        if time_at_last_encounter is not None:
            subject.time_at_last_encounter.CopyFrom(parse_time_element(time_at_last_encounter))
        if sex is not None:
            subject.sex = parse_sex(sex)

    def upsert_vital_status(
        self,
        patient_id: str,
        status: str,
        time_of_death: str | None = None,
        cause_of_death: str | None = None,
        survival_time_in_days: int | None = None,
    ) -> None:
        """Replace the vital status as a whole; survival time defaults to 0."""
        vital_status = pps2.VitalStatus(
            status=parse_vital_status(status),
            survival_time_in_days=survival_time_in_days or 0,
        )
        if time_of_death is not None:
            vital_status.time_of_death.CopyFrom(parse_time_element(time_of_death))
        if cause_of_death is not None:
            term, ref = self._resolve("disease", cause_of_death)
            vital_status.cause_of_death.CopyFrom(term)
            self.ensure_resource(patient_id, ref)

        subject = self._get_or_create_subject(patient_id)
        subject.vital_status.CopyFrom(vital_status)

    # =========================================================================
    # PHENOTYPIC FEATURES
    # =========================================================================

    def upsert_phenotypic_feature(
        self,
        patient_id: str,
        phenotype: str,
        description: str | None = None,
        excluded: bool | None = None,
        onset: str | None = None,
    ) -> None:
        """Add or update the feature keyed by the resolved HPO id."""
        term, ref = self._resolve("hpo", phenotype)
        onset_element = parse_time_element(onset) if onset is not None else None

        phenopacket = self._get_or_create_phenopacket(patient_id)
        feature = next(
            (f for f in phenopacket.phenotypic_features if f.type.id == term.id),
            None,
        )
        if feature is None:
            feature = phenopacket.phenotypic_features.add()
            feature.type.CopyFrom(term)

        if description is not None:
            feature.description = description
        if excluded is not None:
            feature.excluded = excluded
        if onset_element is not None:
            feature.onset.CopyFrom(onset_element)

        self.ensure_resource(patient_id, ref)
        logger.debug("phenotype_upserted", phenopacket_id=phenopacket.id, term=term.id)

    # =========================================================================
    # INTERPRETATIONS
    # =========================================================================

    def upsert_interpretation(
        self,
        patient_id: str,
        disease: str,
        gene_variant_data: PathogenicGeneVariantData,
        subject_sex: str | None = None,
    ) -> None:
        """Set the diagnosis of interpretation ``{phenopacket_id}-{disease_id}``."""
        disease_term, disease_ref = self._resolve("disease", disease)
        self.ensure_resource(patient_id, disease_ref)

        genomic_interpretations: list[pps2.GenomicInterpretation] = []

        if gene_variant_data.kind is GeneVariantKind.CAUSATIVE_GENE:
            assert gene_variant_data.gene is not None
            symbol, hgnc_id = self._require_gene_resolver().resolve_gene(gene_variant_data.gene)
            self.ensure_resource(patient_id, ResourceRef.hgnc())
            genomic_interpretations.append(
                pps2.GenomicInterpretation(
                    subject_or_biosample_id=patient_id,
                    gene=pps2.GeneDescriptor(value_id=hgnc_id, symbol=symbol),
                )
            )
        elif not gene_variant_data.is_empty:
            chromosomal_sex = ChromosomalSex.parse(subject_sex)
            validator = self._require_variant_validator()
            for expression in gene_variant_data.variants:
                variant = validator.validate(expression)
                self.ensure_resource(patient_id, ResourceRef.hgnc())
                self.ensure_resource(patient_id, self._geno_ref)
                if gene_variant_data.gene is not None:
                    variant.validate_against_gene(gene_variant_data.gene)
                genomic_interpretations.append(
                    pps2.GenomicInterpretation(
                        subject_or_biosample_id=patient_id,
                        variant_interpretation=build_variant_interpretation(
                            variant, gene_variant_data.allele_count, chromosomal_sex
                        ),
                    )
                )

        phenopacket = self._get_or_create_phenopacket(patient_id)
        interpretation_id = f"{phenopacket.id}-{disease_term.id}"
        interpretation = next(
            (i for i in phenopacket.interpretations if i.id == interpretation_id),
            None,
        )
        if interpretation is None:
            interpretation = phenopacket.interpretations.add()
            interpretation.id = interpretation_id

        interpretation.progress_status = pps2.Interpretation.ProgressStatus.UNKNOWN_PROGRESS
        interpretation.diagnosis.CopyFrom(
            pps2.Diagnosis(disease=disease_term, genomic_interpretations=genomic_interpretations)
        )
        logger.debug(
            "interpretation_upserted",
            phenopacket_id=phenopacket.id,
            interpretation_id=interpretation_id,
            kind=gene_variant_data.kind.value,
        )

    def _require_gene_resolver(self) -> GeneResolver:
        if self._gene_resolver is None:
            raise MissingTermSourceError("gene")
        return self._gene_resolver

    def _require_variant_validator(self) -> VariantValidator:
        if self._variant_validator is None:
            raise MissingTermSourceError("variant")
        return self._variant_validator

    # =========================================================================
    # LIST-VALUED RECORDS
    # =========================================================================

    @staticmethod
    def _append_unique(container: Any, record: Any) -> bool:
        if any(existing == record for existing in container):
            return False
        container.append(record)
        return True

    def insert_disease(
        self,
        patient_id: str,
        disease: str,
        onset: str | None = None,
        excluded: bool | None = None,
    ) -> None:
        term, ref = self._resolve("disease", disease)
        record = pps2.Disease(term=term)
        if excluded is not None:
            record.excluded = excluded
        if onset is not None:
            record.onset.CopyFrom(parse_time_element(onset))

        phenopacket = self._get_or_create_phenopacket(patient_id)
        self._append_unique(phenopacket.diseases, record)
        self.ensure_resource(patient_id, ref)

    def insert_quantitative_measurement(
        self,
        patient_id: str,
        value: float,
        time_observed: str | None,
        assay_id: str,
        unit_id: str,
        reference_range: tuple[float, float] | None = None,
    ) -> None:
        assay_term, assay_ref = self._resolve("assay", assay_id)
        unit_term, unit_ref = self._resolve("unit", unit_id)

        quantity = pps2.Quantity(unit=unit_term, value=value)
        if reference_range is not None:
            low, high = reference_range
            quantity.reference_range.CopyFrom(
                pps2.ReferenceRange(unit=unit_term, low=low, high=high)
            )
        record = pps2.Measurement(assay=assay_term, value=pps2.Value(quantity=quantity))
        if time_observed is not None:
            record.time_observed.CopyFrom(parse_time_element(time_observed))

        phenopacket = self._get_or_create_phenopacket(patient_id)
        self._append_unique(phenopacket.measurements, record)
        self.ensure_resource(patient_id, assay_ref)
        self.ensure_resource(patient_id, unit_ref)

    def insert_qualitative_measurement(
        self,
        patient_id: str,
        value: str,
        time_observed: str | None,
        assay_id: str,
    ) -> None:
        assay_term, assay_ref = self._resolve("assay", assay_id)
        value_term, value_ref = self._resolve("qualitative", value)

        record = pps2.Measurement(assay=assay_term, value=pps2.Value(ontology_class=value_term))
        if time_observed is not None:
            record.time_observed.CopyFrom(parse_time_element(time_observed))

        phenopacket = self._get_or_create_phenopacket(patient_id)
        self._append_unique(phenopacket.measurements, record)
        self.ensure_resource(patient_id, assay_ref)
        self.ensure_resource(patient_id, value_ref)

    def insert_medical_procedure(
        self,
        patient_id: str,
        procedure_code: str,
        body_site: str | None = None,
        performed: str | None = None,
        treatment_target: str | None = None,
        treatment_intent: str | None = None,
        response_to_treatment: str | None = None,
        treatment_termination_reason: str | None = None,
    ) -> None:
        """Append a procedure medical action with its optional outcome terms."""
        refs: list[ResourceRef] = []

        code, ref = self._resolve("procedure", procedure_code)
        refs.append(ref)
        procedure = pps2.Procedure(code=code)
        if body_site is not None:
            site, ref = self._resolve("anatomy", body_site)
            procedure.body_site.CopyFrom(site)
            refs.append(ref)
        if performed is not None:
            procedure.performed.CopyFrom(parse_time_element(performed))

        record = pps2.MedicalAction(procedure=procedure)
        for field_name, domain, raw in (
            ("treatment_target", "disease", treatment_target),
            ("treatment_intent", "treatment", treatment_intent),
            ("response_to_treatment", "treatment", response_to_treatment),
            ("treatment_termination_reason", "treatment", treatment_termination_reason),
        ):
            if raw is None:
                continue
            term, ref = self._resolve(domain, raw)
            getattr(record, field_name).CopyFrom(term)
            refs.append(ref)

        phenopacket = self._get_or_create_phenopacket(patient_id)
        self._append_unique(phenopacket.medical_actions, record)
        for ref in refs:
            self.ensure_resource(patient_id, ref)

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self) -> list[pps2.Phenopacket]:
        """Stamped copies of every phenopacket, sorted by id."""
        created = Timestamp()
        created.GetCurrentTime()

        built: list[pps2.Phenopacket] = []
        for phenopacket_id in sorted(self._phenopackets):
            phenopacket = pps2.Phenopacket()
            phenopacket.CopyFrom(self._phenopackets[phenopacket_id])
            phenopacket.meta_data.created.CopyFrom(created)
            phenopacket.meta_data.created_by = self._meta_data.created_by
            phenopacket.meta_data.submitted_by = self._meta_data.submitted_by
            phenopacket.meta_data.phenopacket_schema_version = PHENOPACKET_SCHEMA_VERSION
            built.append(phenopacket)

        logger.info("phenopackets_built", count=len(built), cohort=self._meta_data.cohort_name)
        return built


def build_variant_interpretation(
    variant: HgvsVariant,
    allele_count: int,
    chromosomal_sex: ChromosomalSex,
) -> pps2.VariantInterpretation:
    """A pathogenic variant interpretation with its zygosity as allelic state."""
    zygosity = decide_zygosity(
        chromosomal_sex,
        allele_count,
        is_x=variant.is_x_chromosomal,
        is_y=variant.is_y_chromosomal,
        chromosome=variant.chromosome,
    )

    expressions = [
        pps2.Expression(syntax="hgvs.c", value=variant.c_hgvs),
        pps2.Expression(syntax="hgvs.g", value=variant.g_hgvs),
    ]
    if variant.p_hgvs:
        expressions.append(pps2.Expression(syntax="hgvs.p", value=variant.p_hgvs))

    descriptor = pps2.VariationDescriptor(
        id=variant.variant_key,
        gene_context=pps2.GeneDescriptor(value_id=variant.hgnc_id, symbol=variant.symbol),
        expressions=expressions,
        vcf_record=pps2.VcfRecord(
            genome_assembly=variant.assembly,
            chrom=variant.chromosome,
            pos=variant.position,
            ref=variant.ref_allele,
            alt=variant.alt_allele,
        ),
        molecule_context=pps2.MoleculeContext.genomic,
        allelic_state=zygosity.to_ontology_class(),
    )
    return pps2.VariantInterpretation(
        acmg_pathogenicity_classification=pps2.AcmgPathogenicityClassification.PATHOGENIC,
        therapeutic_actionability=pps2.TherapeuticActionability.UNKNOWN_ACTIONABILITY,
        variation_descriptor=descriptor,
    )


__all__ = [
    "PHENOPACKET_SCHEMA_VERSION",
    "DEFAULT_GENO_VERSION",
    "TERM_DOMAINS",
    "BuilderMetaData",
    "PhenopacketBuilder",
    "build_variant_interpretation",
]
