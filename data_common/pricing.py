"""
Jewelry pricing.

Every per-gram figure is in so'm. `lom_narxi` is the supplier's metal price per
gram, `lom_narxi_kirim` the per-gram base used when goods are distributed to a
branch. Provider-held (central) stock is priced from `lom_narxi`, branch stock
from `lom_narxi_kirim`.
"""
from decimal import Decimal, ROUND_HALF_UP

from data_common.constants import DEFAULT_PROFIT_PERCENTAGE

QUALITY_MULTIPLIERS = {
    "A": 1.1,
    "B": 1.0,
    "C": 0.9,
}

# 14K gold
BASE_PURITY = 585

PRICING_FIELDS = ["weight", "lom_narxi", "lom_narxi_kirim", "labor_cost", "profit_percentage"]


def round_som(value):
    """Half-up rounding to a whole so'm"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def material_price_per_gram(lom_narxi, lom_narxi_kirim, is_provider=False):
    return lom_narxi if is_provider else lom_narxi_kirim


def calculate_total_cost(weight, price_per_gram, labor_cost):
    if not weight or weight <= 0:
        return 0
    return weight * price_per_gram + weight * labor_cost


def calculate_selling_price(weight, lom_narxi, lom_narxi_kirim, labor_cost, profit_percentage, is_provider=False):
    """
    selling price = (material + labor) * (1 + profit_percentage / 100), rounded

    :return: 0 when weight is missing or not positive
    """
    if not weight or weight <= 0:
        return 0

    base_price = material_price_per_gram(lom_narxi, lom_narxi_kirim, is_provider)
    base_cost = calculate_total_cost(weight, base_price, labor_cost)
    profit_amount = base_cost * (profit_percentage / 100)

    return round_som(base_cost + profit_amount)


def calculate_profit_margin(selling_price, total_cost):
    if total_cost <= 0:
        return 0
    return (selling_price - total_cost) / total_cost * 100


def calculate_profit(selling_price, weight, lom_narxi, lom_narxi_kirim, labor_cost, is_provider=False):
    if not weight or weight <= 0:
        return {"profit_amount": 0, "profit_percentage": 0}

    price_per_gram = material_price_per_gram(lom_narxi, lom_narxi_kirim, is_provider)
    total_cost = calculate_total_cost(weight, price_per_gram, labor_cost)

    profit_amount = selling_price - total_cost
    profit_percentage = calculate_profit_margin(selling_price, total_cost)

    return {
        "profit_amount": round_som(profit_amount),
        "profit_percentage": round(profit_percentage, 2),
    }


def calculate_cost_breakdown(weight, lom_narxi, lom_narxi_kirim, labor_cost, is_provider=False):
    if not weight or weight <= 0:
        return {"material_cost": 0, "labor_total": 0, "total_cost": 0}

    price_per_gram = material_price_per_gram(lom_narxi, lom_narxi_kirim, is_provider)

    return {
        "material_cost": round_som(weight * price_per_gram),
        "labor_total": round_som(weight * labor_cost),
        "total_cost": round_som(calculate_total_cost(weight, price_per_gram, labor_cost)),
    }


def calculate_item_costs(weight, lom_narxi, lom_narxi_kirim, labor_cost, profit_percentage,
                         quality=None, purity=None):
    """
    Costs and profit for the same piece held centrally and held by a branch.

    Quality grade scales metal prices by 1.1 (A), 1.0 (B) or 0.9 (C). Purity
    (e.g. 750 for 18K) scales them relative to 585.
    """
    quality_multiplier = QUALITY_MULTIPLIERS.get(quality, 1.0)
    purity_multiplier = purity / BASE_PURITY if purity else 1.0

    adjusted_lom_narxi = lom_narxi * quality_multiplier * purity_multiplier
    adjusted_lom_narxi_kirim = lom_narxi_kirim * quality_multiplier * purity_multiplier

    central = {
        "material_cost": weight * adjusted_lom_narxi,
        "labor_cost": weight * labor_cost,
        "total_cost": calculate_total_cost(weight, adjusted_lom_narxi, labor_cost),
        "selling_price": calculate_selling_price(weight, adjusted_lom_narxi, adjusted_lom_narxi_kirim,
                                                 labor_cost, profit_percentage, True),
        "profit": weight * (adjusted_lom_narxi + labor_cost) * (profit_percentage / 100),
        "transfer_profit": weight * (adjusted_lom_narxi_kirim - adjusted_lom_narxi),
        "profit_margin": profit_percentage,
    }

    branch = {
        "material_cost": weight * adjusted_lom_narxi_kirim,
        "labor_cost": weight * labor_cost,
        "total_cost": calculate_total_cost(weight, adjusted_lom_narxi_kirim, labor_cost),
        "selling_price": calculate_selling_price(weight, adjusted_lom_narxi, adjusted_lom_narxi_kirim,
                                                 labor_cost, profit_percentage, False),
        "profit": weight * (adjusted_lom_narxi_kirim + labor_cost) * (profit_percentage / 100),
        "profit_margin": profit_percentage,
    }

    return {
        "central": central,
        "branch": branch,
        "total_system_profit": central["profit"] + central["transfer_profit"],
        "quality_multiplier": quality_multiplier,
        "purity_multiplier": purity_multiplier,
    }


def calculate_optimal_lom_narxi_kirim(lom_narxi, desired_margin=10):
    return lom_narxi * (1 + desired_margin / 100)


def calculate_price_adjustments(items, new_lom_narxi):
    """
    Reprice items after a market metal price change. lom_narxi_kirim moves by
    the same relative amount as lom_narxi.
    """
    adjusted = []

    for item in items:
        percentage_change = (new_lom_narxi - item["lom_narxi"]) / item["lom_narxi"]
        updated_lom_narxi_kirim = item["lom_narxi_kirim"] * (1 + percentage_change)

        costs = calculate_item_costs(
            item["weight"],
            new_lom_narxi,
            updated_lom_narxi_kirim,
            item["labor_cost"],
            item.get("profit_percentage", DEFAULT_PROFIT_PERCENTAGE),
            quality=item.get("quality_grade"),
            purity=item.get("purity_value"),
        )
        side = costs["central"] if item.get("is_provider") else costs["branch"]

        adjusted.append({
            **item,
            "lom_narxi": new_lom_narxi,
            "lom_narxi_kirim": updated_lom_narxi_kirim,
            "selling_price": side["selling_price"],
            "profit": side["profit"],
        })

    return adjusted


def calculate_item_profit(item):
    """
    Theoretical and actual profit of a single item.

    Supposed profit is the distribution spread (lom_narxi_kirim - lom_narxi) per
    gram. Actual cost uses the price really paid to the supplier when known,
    actual revenue only counts once the item is sold.
    """
    weight = item.get("weight") or 0
    lom_narxi = item.get("lom_narxi") or 0
    lom_narxi_kirim = item.get("lom_narxi_kirim") or 0
    labor_cost = item.get("labor_cost") or 0
    paid_price = item.get("payed_lom_narxi") or lom_narxi

    supposed_profit = (lom_narxi_kirim - lom_narxi) * weight
    actual_cost = weight * paid_price + weight * labor_cost
    actual_revenue = item.get("selling_price", 0) * item.get("quantity", 1) if item.get("status") == "sold" else 0
    actual_profit = actual_revenue - actual_cost if actual_revenue else 0
    margin = actual_profit / actual_revenue * 100 if actual_revenue > 0 else 0
    price_difference_impact = (paid_price - lom_narxi) * weight

    return {
        "supposed_profit": supposed_profit,
        "actual_cost": actual_cost,
        "actual_revenue": actual_revenue,
        "actual_profit": actual_profit,
        "profit_margin": margin,
        "price_difference_impact": price_difference_impact,
    }
