"""File-based templates -- inheritance, includes and an override directory.

Templates are searched in ``templates/custom`` first and ``templates`` second,
so ``custom/nav.lt`` replaces the default navigation for every page.

Run:
    python app.py
"""

from pathlib import Path

from quill import Environment, FileSystemLoader

templates_dir = Path(__file__).parent / "templates"
env = Environment(loader=FileSystemLoader([templates_dir / "custom", templates_dir]))

site = {
    "site_name": "My Site",
    "nav_items": [
        {"url": "/", "label": "Home"},
        {"url": "/about", "label": "About & Contact"},
    ],
}

home_output = env.render(
    "home.lt",
    site,
    title="Welcome",
    message="This is a quill site with template inheritance.",
)

about_output = env.render(
    "about.lt",
    site,
    title="About Us",
    description="Built with quill, a template compiler for Python.",
    uptime=99.5,
)


def main() -> None:
    print("=== Home Page ===")
    print(home_output)
    print()
    print("=== About Page ===")
    print(about_output)


if __name__ == "__main__":
    main()
