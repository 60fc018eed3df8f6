from enum import StrEnum


class TransactionKind(StrEnum):
    EXPENSE = "EXPENSE"
    DEPOSIT = "DEPOSIT"
    INVESTMENT = "INVESTMENT"


class Category(StrEnum):
    HOUSING = "HOUSING"
    TRANSPORTATION = "TRANSPORTATION"
    FOOD = "FOOD"
    ENTERTAINMENT = "ENTERTAINMENT"
    HEALTH = "HEALTH"
    UTILITY = "UTILITY"
    SALARY = "SALARY"
    EDUCATION = "EDUCATION"
    OTHER = "OTHER"


CATEGORY_LABELS: dict[Category, str] = {
    Category.HOUSING: "Housing",
    Category.TRANSPORTATION: "Transportation",
    Category.FOOD: "Food",
    Category.ENTERTAINMENT: "Entertainment",
    Category.HEALTH: "Health",
    Category.UTILITY: "Utilities",
    Category.SALARY: "Salary",
    Category.EDUCATION: "Education",
    Category.OTHER: "Other",
}

KIND_ALIASES: dict[str, TransactionKind] = {
    "expense": TransactionKind.EXPENSE,
    "spent": TransactionKind.EXPENSE,
    "deposit": TransactionKind.DEPOSIT,
    "income": TransactionKind.DEPOSIT,
    "investment": TransactionKind.INVESTMENT,
    "invest": TransactionKind.INVESTMENT,
}


def category_label(category: Category | str) -> str:
    try:
        return CATEGORY_LABELS[Category(category)]
    except ValueError:
        return str(category)


def parse_category(value: str) -> Category | None:
    normalized = value.strip().upper()
    try:
        return Category(normalized)
    except ValueError:
        pass
    for category, label in CATEGORY_LABELS.items():
        if label.upper() == normalized:
            return category
    return None


def parse_kind(value: str) -> TransactionKind | None:
    normalized = value.strip().lower()
    if normalized in KIND_ALIASES:
        return KIND_ALIASES[normalized]
    try:
        return TransactionKind(normalized.upper())
    except ValueError:
        return None


def get_categories_str() -> str:
    return ", ".join(c.value.lower() for c in Category)
