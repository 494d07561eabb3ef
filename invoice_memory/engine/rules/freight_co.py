"""
Freight & Co rules.

Freight & Co states early-payment discounts ("2% Skonto within 10 days")
only in the document text, and bills sea freight and shipping on lines
without a SKU.
"""

import re

from invoice_memory.engine.base import MemoryLearner, RuleContext, VendorRuleHandler
from invoice_memory.memory.payloads import SKONTO_PATTERN, PaymentTermsPayload, SkuMappingPayload
from invoice_memory.schemas.correction import FieldCorrection, HumanCorrection


SKONTO_KEY = "payment_terms:skonto"
FREIGHT_SKU_KEY = "sku_mapping:freight"

FREIGHT_KEYWORDS = ("seefracht", "shipping", "transport")
FREIGHT_SKU = "FREIGHT"
SKONTO_FIELDS = ("discountTerms", "paymentTerms.skonto")
LINE_SKU_FIELD = re.compile(r"^lineItems(?:\d+|\[\d+\])\.sku$")

SKONTO_BOOST = 0.10
FREIGHT_SKU_BOOST = 0.10
SKONTO_SEED = 0.7
FREIGHT_SKU_SEED = 0.6


def is_freight_description(description: str) -> bool:
    lowered = description.lower()
    return any(keyword in lowered for keyword in FREIGHT_KEYWORDS)


def is_freight_sku_correction(item: FieldCorrection) -> bool:
    """
    Whether ``item`` assigns the SKU of a freight line.

    ``freightSku`` always qualifies. A line-item SKU correction qualifies
    only when it sets the ``FREIGHT`` SKU or its reason or previous value
    reads like freight; catalogue SKU fixes on ordinary lines do not.
    """
    if not isinstance(item.to_value, str) or not item.to_value:
        return False
    if item.field == "freightSku":
        return True
    if not LINE_SKU_FIELD.match(item.field):
        return False
    if item.to_value.upper() == FREIGHT_SKU:
        return True
    hints = f"{item.reason} {item.from_value or ''}"
    return is_freight_description(hints) or "freight" in hints.lower()


def find_sku_correction(correction: HumanCorrection) -> FieldCorrection | None:
    """First correction that assigns a SKU to a freight line."""
    for item in correction.corrections:
        if is_freight_sku_correction(item):
            return item
    return None


class FreightCoRules(VendorRuleHandler):
    """Skonto terms extraction and freight SKU mapping for Freight & Co."""

    vendor = "Freight & Co"

    def apply(self, context: RuleContext) -> None:
        self._apply_skonto(context)
        self._apply_freight_sku(context)

    def _apply_skonto(self, context: RuleContext) -> None:
        match = SKONTO_PATTERN.search(context.raw_text)
        if match is not None:
            percent = int(match.group(1))
            days = int(match.group(2))
            existing_terms = context.fields.get("paymentTerms") or {}
            context.fields["paymentTerms"] = {
                **existing_terms,
                "skonto": {"percent": percent, "days": days},
            }
            context.propose(f"Extracted Skonto terms: {percent}% if paid within {days} days.")
            context.boost(SKONTO_BOOST)
            context.explain("Detected and structured Skonto payment terms for Freight & Co.")
            return

        memory = context.find_memory(SKONTO_KEY)
        if memory is not None:
            # descriptive only: no direct match means nothing new to fill in
            context.explain("Applied known Skonto payment pattern from memory for Freight & Co.")
            context.use(memory)

    def _apply_freight_sku(self, context: RuleContext) -> None:
        memory = context.find_memory(FREIGHT_SKU_KEY)
        payload = memory.payload if memory is not None else None
        sku = payload.sku if isinstance(payload, SkuMappingPayload) and payload.sku else None

        items = [dict(item) for item in context.fields.get("lineItems", [])]
        changed = False

        for index, item in enumerate(items):
            if not is_freight_description(item.get("description") or ""):
                continue

            if sku is None:
                context.explain(
                    "Detected freight-like description but no SKU mapping yet; "
                    "kept for human review."
                )
                continue

            item["sku"] = sku
            changed = True
            context.propose(f'Mapped line {index + 1} "{item["description"]}" to SKU {sku}.')
            context.boost(FREIGHT_SKU_BOOST)
            context.explain("Applied learned freight SKU mapping for Freight & Co.")

        if changed:
            context.fields["lineItems"] = items
            context.use(memory)

    def learn(self, correction: HumanCorrection, learner: MemoryLearner) -> list[str]:
        updates: list[str] = []

        skonto_correction = correction.find(*SKONTO_FIELDS)
        if skonto_correction is not None:
            terms = skonto_correction.to_value
            if isinstance(terms, dict):
                payload = PaymentTermsPayload.from_dict(terms)
            else:
                payload = PaymentTermsPayload.from_text(str(terms or ""))
            updates.append(
                learner.reinforce_or_create(SKONTO_KEY, payload, SKONTO_SEED, "Skonto terms")
            )
            learner.audit(
                "Learned/reinforced Skonto payment terms for Freight & Co from human correction."
            )

        sku_correction = find_sku_correction(correction)
        if sku_correction is not None:
            update = self._learn_freight_sku(sku_correction.to_value, learner)
            if update is not None:
                updates.append(update)

        return updates

    def _learn_freight_sku(self, sku: str, learner: MemoryLearner) -> str | None:
        existing = learner.find(FREIGHT_SKU_KEY)
        if existing is None:
            update = learner.create(
                FREIGHT_SKU_KEY, SkuMappingPayload(sku=sku), FREIGHT_SKU_SEED, f"{sku} SKU mapping"
            )
        else:
            payload = existing.payload
            stored_sku = payload.sku if isinstance(payload, SkuMappingPayload) else None
            if stored_sku != sku:
                learner.audit(
                    f"Freight SKU correction to {sku} conflicts with stored mapping "
                    f"#{existing.id} ({stored_sku}); memory left unchanged."
                )
                return None
            update = learner.reinforce(existing, f"{sku} SKU mapping")

        learner.audit(
            "Learned/reinforced freight SKU mapping for Freight & Co from human correction."
        )
        return update
