"""Hello World -- the simplest quill example.

Render an in-memory template with render variables.

Run:
    python app.py
"""

from quill import DictLoader, Environment

env = Environment(loader=DictLoader({"hello.lt": "Hello, <%=html name %>!"}))

output = env.render("hello.lt", name="World")


def main() -> None:
    print(output)
    print()

    # The compiled template is reused for every render
    for name in ["Quill", "<Python>"]:
        print(env.render("hello.lt", name=name))


if __name__ == "__main__":
    main()
