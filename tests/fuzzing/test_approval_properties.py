"""
Hypothesis-based property tests for the pure approval domain.

Properties verified:
1. Threshold filtering keeps exactly the levels whose threshold the amount exceeds
2. Level validation accepts exactly the permutations of 1..n
3. Chain summaries agree with the chain outcome
4. Policy selection never returns a policy with no applicable level
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from approvals_kernel.domain.approval import (
    ApprovalLevel,
    ApprovalPolicy,
    ApprovalStep,
    ChainOutcome,
    ChainStatus,
    EntityType,
    PolicyContext,
    StepStatus,
    chain_outcome,
    filter_applicable_levels,
    select_policy,
    summarize_chain,
    validate_levels,
)
from approvals_kernel.exceptions import InvalidPolicyLevelsError

TENANT = uuid4()


# =============================================================================
# Strategies
# =============================================================================


def amounts():
    return st.decimals(
        min_value=Decimal("0"),
        max_value=Decimal("1000000"),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    )


@composite
def level_lists(draw, max_levels=6):
    count = draw(st.integers(min_value=1, max_value=max_levels))
    thresholds = draw(st.lists(st.one_of(st.none(), amounts()), min_size=count, max_size=count))
    return [
        ApprovalLevel(order, f"ROLE_{order}", threshold)
        for order, threshold in enumerate(thresholds, start=1)
    ]


@composite
def chains(draw):
    """A chain as the engine can produce it: a decided prefix, then PENDING or SKIPPED."""
    count = draw(st.integers(min_value=1, max_value=6))
    approved = draw(st.integers(min_value=0, max_value=count))
    rejected = approved < count and draw(st.booleans())

    statuses = [StepStatus.APPROVED] * approved
    if rejected:
        statuses.append(StepStatus.REJECTED)
        statuses.extend([StepStatus.SKIPPED] * (count - approved - 1))
    else:
        statuses.extend([StepStatus.PENDING] * (count - approved))

    return [
        ApprovalStep(
            step_id=uuid4(),
            tenant_id=TENANT,
            entity_type=EntityType.PURCHASE_REQUEST,
            entity_id="pr-1",
            level_order=order,
            required_role="MANAGER",
            status=status,
        )
        for order, status in enumerate(statuses, start=1)
    ]


# =============================================================================
# Properties
# =============================================================================


class TestThresholdProperties:

    @given(levels=level_lists(), amount=st.one_of(st.none(), amounts()))
    @settings(max_examples=200)
    def test_filter_keeps_exactly_the_applicable_levels(self, levels, amount):
        applicable = filter_applicable_levels(levels, amount)

        for level in levels:
            expected = level.threshold is None or (amount is not None and amount > level.threshold)
            assert (level in applicable) == expected

        orders = [level.level_order for level in applicable]
        assert orders == sorted(orders)

    @given(levels=level_lists(), amount=amounts())
    def test_selected_policy_has_levels(self, levels, amount):
        policy = ApprovalPolicy(
            policy_id=uuid4(),
            tenant_id=TENANT,
            name="generated",
            entity_type=EntityType.PURCHASE_REQUEST,
            levels=tuple(levels),
        )
        selected = select_policy([policy], PolicyContext(tenant_id=TENANT, amount=amount))
        if selected is None:
            assert filter_applicable_levels(levels, amount) == ()
        else:
            assert selected.levels
            assert all(level.applies_to(amount) for level in selected.levels)


class TestLevelValidationProperties:

    @given(st.integers(min_value=1, max_value=8).flatmap(
        lambda n: st.permutations(list(range(1, n + 1)))
    ))
    def test_permutations_of_one_to_n_pass(self, orders):
        validate_levels("ok", [ApprovalLevel(order, "MANAGER") for order in orders])

    @given(st.lists(st.integers(min_value=0, max_value=10), min_size=1, max_size=8))
    def test_anything_else_fails(self, orders):
        levels = [ApprovalLevel(order, "MANAGER") for order in orders]
        if sorted(orders) == list(range(1, len(orders) + 1)):
            validate_levels("ok", levels)
        else:
            with pytest.raises(InvalidPolicyLevelsError):
                validate_levels("broken", levels)


class TestChainSummaryProperties:

    @given(chains())
    def test_summary_agrees_with_outcome(self, chain):
        summary = summarize_chain(chain)
        outcome = chain_outcome(chain)
        pending = [s for s in chain if s.status is StepStatus.PENDING]

        assert summary.total_steps == len(chain)
        assert summary.completed_steps == len(chain) - len(pending)
        if pending:
            assert outcome is None
            assert summary.status is ChainStatus.PENDING
            assert summary.current_level == pending[0].level_order
        elif outcome is ChainOutcome.REJECTED:
            assert summary.status is ChainStatus.REJECTED
        else:
            assert outcome is ChainOutcome.APPROVED
            assert summary.status is ChainStatus.APPROVED
