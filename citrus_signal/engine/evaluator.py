"""
Signal evaluator: converts a ``SignalInput`` into a ``SignalResult``.

Evaluation order (strict priority; the first match short-circuits)
------------------------------------------------------------------
    1. BRAZIL DROUGHT  : month in {8, 9, 10}  AND  rainfall index < -1.5
                         -> win_rates.brazil_drought, "STRONG LONG (Brazil Drought)"
    2. RSI TAKE PROFIT : rsi > 70  AND  temp > 35
                         -> win_rates.rsi_take_profit, "TAKE PROFIT / SELL"
    3. FALSE ALARM     : hurricane active  AND  centre far from Polk
                         -> win_rates.hurricane_false_alarm, "SELL/SHORT (False Alarm)"
    4. BASELINE        : frost regime base rate x inventory multiplier
                         (x La Niña amplifier), capped, rounded to 2 dp.

An override replaces the whole baseline: no multiplier, no amplifier and
no cap beyond the rule table's own value. La Niña is only ever an
amplifier on the baseline.

Baseline frost regime
---------------------
    temp < critical  AND  hours >= min_duration  -> real_frost
    temp < critical                              -> volatility_pre_frost
    otherwise                                    -> neutral_win_rate (0.5)

Inventory bands (millions of gallons)
-------------------------------------
    < 35 -> under_35m (2.0)     <= 45 -> 35_45m (1.5)
    > 55 -> over_55m (0.7)      else  -> neutral (1.0)

Baseline action (inventory rules before frost rules; first match wins)
----------------------------------------------------------------------
    inventory < 35                         -> "Double Position"
    inventory <= 45 and temp < critical    -> "Increase Position"
    inventory > 55                         -> "Reduce Position"
    temp < critical and hours >= duration  -> "Hold Position"
    otherwise                              -> "Monitor"

There is no error exit. Unset or neutral inputs (RSI 50, empty context)
simply fail to trigger overrides and fall through to the baseline.
``evaluate`` is pure: same input, same output, no side effects.
"""

from __future__ import annotations

from citrus_signal.models.market import SignalInput
from citrus_signal.models.signal import (
    ACTION_BRAZIL_DROUGHT,
    ACTION_DOUBLE,
    ACTION_FALSE_ALARM,
    ACTION_HOLD,
    ACTION_INCREASE,
    ACTION_MONITOR,
    ACTION_REDUCE,
    ACTION_TAKE_PROFIT,
    SignalFlags,
    SignalInsight,
    SignalResult,
)
from citrus_signal.rules import DEFAULT_RULES, MarketRules

DROUGHT_MONTHS = frozenset({8, 9, 10})
DROUGHT_RAINFALL_THRESHOLD = -1.5
RSI_OVERBOUGHT_THRESHOLD = 70.0
FROST_RESOLVED_TEMP_F = 35.0

INVENTORY_UNDER = 35.0
INVENTORY_LOW_MAX = 45.0
INVENTORY_OVER = 55.0


# ── Condition predicates ──────────────────────────────────────────────────────


def is_brazil_drought(month: int, rainfall_index: float) -> bool:
    """Drought during the São Paulo rainy-season window."""
    return month in DROUGHT_MONTHS and rainfall_index < DROUGHT_RAINFALL_THRESHOLD


def is_rsi_take_profit(rsi_value: float, current_temp: float) -> bool:
    """Momentum overbought and cold stress resolved."""
    return rsi_value > RSI_OVERBOUGHT_THRESHOLD and current_temp > FROST_RESOLVED_TEMP_F


def is_hurricane_false_alarm(is_active: bool, far_from_polk: bool) -> bool:
    """Storm active but centred more than 100 mi from the target growing region."""
    return is_active and far_from_polk


def inventory_band(
    inventory: float,
    rules: MarketRules = DEFAULT_RULES,
) -> tuple[str, float]:
    """Return ``(band description, multiplier)`` for an inventory level."""
    m = rules.inventory_multipliers
    if inventory < INVENTORY_UNDER:
        return f"Critical shortage (<35M gallons): {inventory:g}M", m.under_35m
    if inventory <= INVENTORY_LOW_MAX:
        return f"Below average (35-45M gallons): {inventory:g}M", m.between_35_45m
    if inventory > INVENTORY_OVER:
        return f"Elevated supply (>55M gallons): {inventory:g}M", m.over_55m
    return f"Neutral range (45-55M gallons): {inventory:g}M", m.neutral


def frost_regime(
    current_temp: float,
    hours_below: float,
    rules: MarketRules = DEFAULT_RULES,
) -> tuple[str, float]:
    """Return ``(regime description, base win rate)`` for the frost state."""
    critical = rules.frost_rule.critical_temp_f
    min_hours = rules.frost_rule.min_duration_hours
    if current_temp < critical and hours_below >= min_hours:
        return (
            f"Real frost: {current_temp:g}F below {critical:g}F "
            f"for {hours_below:.1f}h (>= {min_hours:g}h)",
            rules.win_rates.real_frost,
        )
    if current_temp < critical:
        return (
            f"Pre-frost volatility: {current_temp:g}F below {critical:g}F "
            f"for {hours_below:.1f}h (< {min_hours:g}h)",
            rules.win_rates.volatility_pre_frost,
        )
    return (
        f"No frost signal: {current_temp:g}F at or above {critical:g}F",
        rules.neutral_win_rate,
    )


def baseline_action(
    current_temp: float,
    hours_below: float,
    inventory: float,
    rules: MarketRules = DEFAULT_RULES,
) -> str:
    """Recommended action from inventory and frost state only."""
    below_critical = current_temp < rules.frost_rule.critical_temp_f
    sufficient = hours_below >= rules.frost_rule.min_duration_hours

    if inventory < INVENTORY_UNDER:
        return ACTION_DOUBLE
    if inventory <= INVENTORY_LOW_MAX and below_critical:
        return ACTION_INCREASE
    if inventory > INVENTORY_OVER:
        return ACTION_REDUCE
    if below_critical and sufficient:
        return ACTION_HOLD
    return ACTION_MONITOR


# ── Evaluation ────────────────────────────────────────────────────────────────


def _flags(signal_input: SignalInput) -> SignalFlags:
    ctx = signal_input.market_context
    return SignalFlags(
        is_hurricane_false_alarm=is_hurricane_false_alarm(
            ctx.is_hurricane_active, ctx.hurricane_center_far_from_polk
        ),
        is_la_nina_active=ctx.is_la_nina,
        is_brazil_drought=is_brazil_drought(ctx.current_month, ctx.brazil_rainfall_index),
        is_rsi_overbought=signal_input.rsi_value > RSI_OVERBOUGHT_THRESHOLD,
    )


def _override_result(
    signal_input: SignalInput,
    flags: SignalFlags,
    rules: MarketRules,
    override: str,
    action: str,
    win_rate: float,
    effect: str,
    effect_field: str,
) -> SignalResult:
    frost_condition, _ = frost_regime(
        signal_input.current_temp, signal_input.hours_below_28, rules
    )
    inventory_condition, _ = inventory_band(signal_input.current_inventory, rules)
    evidence = (
        f"Override fired: {override}",
        effect,
        f"Base win rate {win_rate:.2f} from rule '{override}' (multipliers bypassed)",
        f"Not evaluated: {frost_condition}",
        f"Not evaluated: {inventory_condition}",
    )
    insight = SignalInsight(
        frost_condition=f"Overridden by {override}",
        inventory_condition=inventory_condition,
        base_win_rate=win_rate,
        inventory_multiplier=1.0,
        override=override,
        evidence=evidence,
        **{effect_field: effect},
    )
    return SignalResult(
        win_probability=round(min(win_rate, rules.max_win_probability), 2),
        recommended_action=action,
        insight=insight,
        flags=flags,
    )


def evaluate(signal_input: SignalInput, rules: MarketRules = DEFAULT_RULES) -> SignalResult:
    """Evaluate one input against the rule table.

    Args:
        signal_input: Immutable snapshot of all parameters.
        rules:        Rule table (defaults to the built-in constants).

    Returns:
        ``SignalResult`` with win probability, action, insight and flags.
    """
    ctx = signal_input.market_context
    flags = _flags(signal_input)

    # 1. Brazil drought
    if flags.is_brazil_drought:
        return _override_result(
            signal_input, flags, rules,
            override="brazil_drought",
            action=ACTION_BRAZIL_DROUGHT,
            win_rate=rules.win_rates.brazil_drought,
            effect=(
                f"Brazil drought: month {ctx.current_month} in rainy-season window "
                f"and rainfall index {ctx.brazil_rainfall_index:g} < "
                f"{DROUGHT_RAINFALL_THRESHOLD:g}"
            ),
            effect_field="drought_effect",
        )

    # 2. RSI take-profit
    if is_rsi_take_profit(signal_input.rsi_value, signal_input.current_temp):
        return _override_result(
            signal_input, flags, rules,
            override="rsi_take_profit",
            action=ACTION_TAKE_PROFIT,
            win_rate=rules.win_rates.rsi_take_profit,
            effect=(
                f"RSI take-profit: RSI {signal_input.rsi_value:g} > "
                f"{RSI_OVERBOUGHT_THRESHOLD:g} with temperature "
                f"{signal_input.current_temp:g}F > {FROST_RESOLVED_TEMP_F:g}F"
            ),
            effect_field="rsi_effect",
        )

    # 3. Hurricane false alarm
    if flags.is_hurricane_false_alarm:
        return _override_result(
            signal_input, flags, rules,
            override="hurricane_false_alarm",
            action=ACTION_FALSE_ALARM,
            win_rate=rules.win_rates.hurricane_false_alarm,
            effect=(
                "Hurricane false alarm: storm active but centre more than "
                "100 mi from Polk County"
            ),
            effect_field="hurricane_effect",
        )

    # 4. Baseline
    frost_condition, base_rate = frost_regime(
        signal_input.current_temp, signal_input.hours_below_28, rules
    )
    inventory_condition, multiplier = inventory_band(signal_input.current_inventory, rules)

    raw = base_rate * multiplier
    evidence = [
        f"Frost regime: {frost_condition} -> base win rate {base_rate:.2f}",
        f"Inventory: {inventory_condition} -> multiplier x{multiplier:g}",
    ]

    la_nina_effect = None
    if ctx.is_la_nina:
        raw *= rules.la_nina_amplifier
        la_nina_effect = f"La Niña amplifier x{rules.la_nina_amplifier:g} applied"
        evidence.append(la_nina_effect)

    hurricane_effect = None
    if ctx.is_hurricane_active:
        hurricane_effect = "Hurricane active near Polk County (no false-alarm override)"
        evidence.append(hurricane_effect)

    rsi_effect = None
    if flags.is_rsi_overbought:
        rsi_effect = (
            f"RSI {signal_input.rsi_value:g} overbought but cold stress unresolved "
            f"(temperature {signal_input.current_temp:g}F <= {FROST_RESOLVED_TEMP_F:g}F)"
        )
        evidence.append(rsi_effect)

    capped = min(raw, rules.max_win_probability)
    if capped < raw:
        evidence.append(f"Capped at {rules.max_win_probability:.2f} (raw {raw:.4f})")
    win_probability = round(capped, 2)

    action = baseline_action(
        signal_input.current_temp,
        signal_input.hours_below_28,
        signal_input.current_inventory,
        rules,
    )
    evidence.append(f"Action: {action}")

    insight = SignalInsight(
        frost_condition=frost_condition,
        inventory_condition=inventory_condition,
        base_win_rate=base_rate,
        inventory_multiplier=multiplier,
        la_nina_effect=la_nina_effect,
        hurricane_effect=hurricane_effect,
        rsi_effect=rsi_effect,
        evidence=tuple(evidence),
    )
    return SignalResult(
        win_probability=win_probability,
        recommended_action=action,
        insight=insight,
        flags=flags,
    )
