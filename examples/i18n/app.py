"""Localized output -- numbers, money and dates per locale.

The same template compiled for three locales. Locale-aware filters take
the compile-time locale unless a call names its own. A shared footer is
registered once as a partial and pulled in with ``{> footer}``.

Run:
    python app.py
"""

from datetime import date

import formatr

formatr.register_template("footer", "-- {shop} ({today|date:short})")

SOURCE = (
    "{qty|plural:item,items} for {price|currency:EUR}, "
    "{discount|percent} off, ships {ship|date:long}\n"
    "{> footer}"
)

LOCALES = ["en-US", "de-DE", "fr-FR"]

CONTEXT = {
    "qty": 3,
    "price": 1249.9,
    "discount": 0.15,
    "ship": date(2024, 3, 1),
    "today": date(2024, 2, 20),
    "shop": "Formatr Books",
}

templates = {locale: formatr.compile(SOURCE, locale=locale) for locale in LOCALES}

outputs = {locale: template.render(CONTEXT) for locale, template in templates.items()}


def main() -> None:
    for locale, text in outputs.items():
        print(f"[{locale}]")
        print(text)
        print()


if __name__ == "__main__":
    main()
