"""Hello World -- the simplest formatr example.

Compile a template from a string and render it with context values.

Run:
    python app.py
"""

import formatr

template = formatr.compile("Hello, {name|capitalize}!")

output = template.render(name="world")


def main() -> None:
    print(output)
    print()

    # One compiled template, many renders
    for name in ["ada", "grace", "linus"]:
        print(template.render(name=name))

    # Missing keys are kept as written by default
    print(template.render())


if __name__ == "__main__":
    main()
