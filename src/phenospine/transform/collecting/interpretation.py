"""Genetic interpretations: disease cells plus the row's linked genes and variants."""

from __future__ import annotations

from collections.abc import Sequence

from phenospine.config.context import Context
from phenospine.extract.contextualized_table import (
    ContextualizedTable,
    single_multiplicity_element_across,
)
from phenospine.extract.filters import Filter
from phenospine.transform.collecting.base import register_collector, text_values
from phenospine.transform.entity_builder import PhenopacketBuilder
from phenospine.transform.gene_variant import PathogenicGeneVariantData


@register_collector("interpretation")
class InterpretationCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        subject_sex = single_multiplicity_element_across(patient_slices, patient_id, Context.SUBJECT_SEX)

        for table in patient_slices:
            height = table.data.height
            scs = (
                table.filter_series_context()
                .where_header_context(Filter.is_none())
                .where_data_context(Context.DISEASE_LABEL_OR_ID)
                .collect()
            )
            for sc in scs:
                gene_cols = [
                    text_values(table.data[name], height)
                    for name in table.get_linked_cols_with_context(
                        sc.building_block_id, Context.HGNC_SYMBOL_OR_ID
                    )
                ]
                variant_cols = [
                    text_values(table.data[name], height)
                    for name in table.get_linked_cols_with_context(sc.building_block_id, Context.HGVS)
                ]
                disease_cols = [text_values(column, height) for column in table.get_columns(sc.identifier)]

                for row in range(height):
                    gene_variant_data = PathogenicGeneVariantData.from_genes_and_variants(
                        [col[row] for col in gene_cols if col[row] is not None],
                        [col[row] for col in variant_cols if col[row] is not None],
                    )
                    if gene_variant_data.is_empty:
                        continue
                    for disease_col in disease_cols:
                        disease = disease_col[row]
                        if disease is None:
                            continue
                        builder.upsert_interpretation(
                            patient_id, disease, gene_variant_data, subject_sex=subject_sex
                        )


__all__ = ["InterpretationCollector"]
