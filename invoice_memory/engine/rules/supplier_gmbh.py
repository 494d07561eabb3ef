"""
Supplier GmbH rules.

The vendor prints the service date under the German label
``Leistungsdatum`` which the extractor does not map. Once a reviewer has
corrected ``serviceDate`` for this vendor, the label mapping is applied
automatically.
"""

import re

from invoice_memory.engine.base import MemoryLearner, RuleContext, VendorRuleHandler
from invoice_memory.memory.models import MemoryEntry
from invoice_memory.memory.payloads import LabelMappingPayload
from invoice_memory.schemas.correction import HumanCorrection
from invoice_memory.utils.date_utils import DOTTED_DATE_FORMAT, to_iso_date


SERVICE_DATE_LABEL = "Leistungsdatum"
LABEL_MAPPING_KEY = f"label_mapping:{SERVICE_DATE_LABEL}"
LABEL_VALUE_PATTERN = re.compile(rf"{SERVICE_DATE_LABEL}:\s*([0-9.]+)")

LABEL_MAPPING_BOOST = 0.15
LABEL_MAPPING_SEED = 0.6


def _target_field(memory: MemoryEntry | None) -> str:
    payload = memory.payload if memory is not None else None
    if isinstance(payload, LabelMappingPayload) and payload.target_field:
        return payload.target_field
    return "serviceDate"


class SupplierGmbHRules(VendorRuleHandler):
    """Service-date label mapping for Supplier GmbH."""

    vendor = "Supplier GmbH"

    def apply(self, context: RuleContext) -> None:
        if f"{SERVICE_DATE_LABEL}:" not in context.raw_text:
            return

        memory = context.find_memory(LABEL_MAPPING_KEY)
        target_field = _target_field(memory)
        if context.fields.get(target_field):
            return

        if memory is None:
            context.explain(
                f'Found "{SERVICE_DATE_LABEL}" in rawText but no vendor memory yet; '
                "kept for human review."
            )
            return

        match = LABEL_VALUE_PATTERN.search(context.raw_text)
        if match is None:
            context.explain(
                f"Could not parse service date from {SERVICE_DATE_LABEL}; left for human review."
            )
            return

        iso_date = to_iso_date(match.group(1).strip("."), formats=DOTTED_DATE_FORMAT)
        if iso_date is None:
            context.explain(
                f"Found {SERVICE_DATE_LABEL} but date format was unexpected; "
                "left for human review."
            )
            return

        context.fields[target_field] = iso_date
        context.propose(
            f"Set {target_field}={iso_date} based on vendor memory for {SERVICE_DATE_LABEL}"
        )
        context.boost(LABEL_MAPPING_BOOST)
        context.explain(
            f'Applied learned mapping: "{SERVICE_DATE_LABEL}" -> {target_field} for {self.vendor}.'
        )
        context.use(memory)

    def learn(self, correction: HumanCorrection, learner: MemoryLearner) -> list[str]:
        if correction.find("serviceDate") is None:
            return []

        update = learner.reinforce_or_create(
            LABEL_MAPPING_KEY,
            LabelMappingPayload(target_field="serviceDate"),
            LABEL_MAPPING_SEED,
            f"{SERVICE_DATE_LABEL} -> serviceDate",
        )
        learner.audit(
            "Learned/reinforced vendor-specific label mapping from human correction: "
            f'"{SERVICE_DATE_LABEL}" -> serviceDate.'
        )
        return [update]
