"""Linting templates -- static analysis without rendering.

``formatr.analyze`` reports every problem ``compile`` would reject, plus
lint findings such as filters that look wrong for a placeholder's name,
and missing keys when given a sample context.

Run:
    python app.py
"""

import formatr

TEMPLATES = {
    "welcome.txt": "Welcome, {user.name|capitalize}! You have {inbox.count|plural:message,messages}.",
    "receipt.txt": "Total: {total|curency:USD}\nCustomer: {customer_name|number}",
    "broken.txt": "Hello {name|pad:10,left,*,extra} and {unclosed",
}

SAMPLE_CONTEXT = {"user": {"name": "ada"}, "inbox": {}}

reports = {
    name: formatr.analyze(source, context=SAMPLE_CONTEXT)
    for name, source in TEMPLATES.items()
}


def main() -> None:
    for name, report in reports.items():
        if not report:
            print(f"{name}: ok")
            continue
        print(report.format(TEMPLATES[name], name=name))
        print()


if __name__ == "__main__":
    main()
