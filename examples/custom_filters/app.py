"""Custom filters -- extending formatr with your own functions.

Demonstrates plain callables in ``filters={...}``, the ``@sync_filter``
decorator with a declared argument count, and overriding a built-in for
one template only.

Run:
    python app.py
"""

import formatr
from formatr import sync_filter


# Plain callable: receives the value and the raw string arguments
def money(amount: float, symbol: str = "$") -> str:
    """Format amount with a currency symbol."""
    return f"{symbol}{float(amount):,.2f}"


# Declared contract: exactly one argument, checked at compile time
@sync_filter(arity=1)
def repeat(value: object, times: str) -> str:
    return str(value) * int(times)


FILTERS = {"money": money, "repeat": repeat}

invoice = formatr.compile(
    "{customer|upper}: {total|money} ({total|money:'EUR '})\n{rule|repeat:20}",
    filters=FILTERS,
)

output = invoice.render(customer="acme", total=1234.5, rule="=")

# Overrides are scoped to the compile that declares them
shouty = formatr.compile("{word|upper}", filters={"upper": lambda v: f"{str(v).upper()}!!"})
plain = formatr.compile("{word|upper}")


def main() -> None:
    print(output)
    print(shouty.render(word="hey"), plain.render(word="hey"))

    try:
        formatr.compile("{rule|repeat}", filters=FILTERS)
    except formatr.FilterArityError as err:
        print(err.format_compact())


if __name__ == "__main__":
    main()
