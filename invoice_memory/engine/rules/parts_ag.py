"""
Parts AG rules.

Parts AG prints VAT-inclusive prices and sometimes omits the currency
field even though the currency code appears in the document text.
"""

import re

from invoice_memory.engine.base import MemoryLearner, RuleContext, VendorRuleHandler
from invoice_memory.memory.payloads import CurrencyDefaultPayload, TaxBehaviorPayload
from invoice_memory.schemas.correction import FieldCorrection, HumanCorrection


VAT_INCLUSIVE_KEY = "tax_behavior:VAT_INCLUSIVE"
CURRENCY_DEFAULT_KEY = "currency_default"
RECOMPUTE_FROM_GROSS = "RECOMPUTE_FROM_GROSS"

VAT_INCLUSIVE_PHRASES = ("MwSt. inkl.", "Prices incl. VAT")
CURRENCY_PATTERN = re.compile(r"\b(EUR|USD|GBP)\b")
VAT_INCLUSIVE_REASON = re.compile(r"\b(?:vat|mwst)\.?\s*in[ck]l|\bin[ck]l\.?\s*(?:vat|mwst)", re.IGNORECASE)

VAT_FIELDS = ("vatBehavior", "grossTotal", "taxTotal")

VAT_BOOST = 0.15
CURRENCY_BOOST = 0.10
VAT_SEED = 0.7
CURRENCY_SEED = 0.7


def indicates_vat_inclusive(correction: FieldCorrection) -> bool:
    """Whether a reviewer correction states that prices include VAT."""
    if isinstance(correction.to_value, str) and correction.to_value.upper() == "VAT_INCLUSIVE":
        return True
    return bool(VAT_INCLUSIVE_REASON.search(correction.reason))


class PartsAGRules(VendorRuleHandler):
    """VAT-inclusive pricing and currency recovery for Parts AG."""

    vendor = "Parts AG"

    def apply(self, context: RuleContext) -> None:
        self._apply_vat_inclusive(context)
        self._apply_currency_recovery(context)

    def _apply_vat_inclusive(self, context: RuleContext) -> None:
        if not any(phrase in context.raw_text for phrase in VAT_INCLUSIVE_PHRASES):
            return

        memory = context.find_memory(VAT_INCLUSIVE_KEY)
        if memory is None:
            context.explain(
                'Detected "MwSt. inkl." / "Prices incl. VAT" for Parts AG but no stored '
                "strategy yet; flag for human review."
            )
            return

        context.explain(
            'Detected "MwSt. inkl." / "Prices incl. VAT" and vendor memory VAT_INCLUSIVE for Parts AG.'
        )
        fields = context.invoice.fields
        correction = (
            "Recompute net and tax from gross because prices are VAT-inclusive "
            "(Parts AG strategy)."
        )
        if fields.gross_total > 0 and fields.tax_rate > 0:
            net = round(fields.gross_total / (1 + fields.tax_rate), 2)
            tax = round(fields.gross_total - net, 2)
            correction = f"{correction[:-1]}: netTotal={net:.2f}, taxTotal={tax:.2f}."
        context.propose(correction)
        context.boost(VAT_BOOST)
        context.use(memory)

    def _apply_currency_recovery(self, context: RuleContext) -> None:
        if context.invoice.fields.currency:
            return

        match = CURRENCY_PATTERN.search(context.raw_text)
        if match is not None:
            currency = match.group(1)
            context.fields["currency"] = currency
            context.propose(f"Recovered missing currency from raw text: {currency}")
            context.boost(CURRENCY_BOOST)
            context.explain(f'Recovered currency "{currency}" for Parts AG from raw text.')
            return

        context.explain("Currency missing and not found in raw text; keep for human review.")
        memory = context.find_memory(CURRENCY_DEFAULT_KEY)
        if memory is not None:
            payload = memory.payload
            if isinstance(payload, CurrencyDefaultPayload) and payload.currency:
                context.explain(
                    f"Vendor memory suggests default currency {payload.currency}; "
                    "confirm during review."
                )

    def learn(self, correction: HumanCorrection, learner: MemoryLearner) -> list[str]:
        updates: list[str] = []

        vat_correction = correction.find(*VAT_FIELDS)
        if vat_correction is not None:
            existing = learner.find(VAT_INCLUSIVE_KEY)
            if existing is not None:
                updates.append(learner.reinforce(existing, "VAT inclusive behavior"))
            elif indicates_vat_inclusive(vat_correction):
                updates.append(
                    learner.create(
                        VAT_INCLUSIVE_KEY,
                        TaxBehaviorPayload(strategy=RECOMPUTE_FROM_GROSS),
                        VAT_SEED,
                        "VAT inclusive behavior",
                    )
                )
            if updates:
                learner.audit(
                    "Learned/reinforced VAT inclusive tax behavior for Parts AG from human correction."
                )
            else:
                learner.audit(
                    f"Ignored {vat_correction.field} correction for Parts AG: "
                    "no VAT-inclusive indication and no stored strategy."
                )

        currency_correction = correction.find("currency")
        if currency_correction is not None and isinstance(currency_correction.to_value, str):
            currency = currency_correction.to_value
            updates.append(
                learner.reinforce_or_create(
                    CURRENCY_DEFAULT_KEY,
                    CurrencyDefaultPayload(currency=currency),
                    CURRENCY_SEED,
                    f"default currency {currency}",
                )
            )
            learner.audit("Learned/reinforced default currency for Parts AG from human correction.")

        return updates
