"""Write the OpenAPI document of the VidTube app to ``docs/vidtube_openapi.yaml``.

Usage::

    python -m scripts.generate_openapi
"""

import pathlib

import yaml

from vidtube.main import app

OUTPUT_PATH = pathlib.Path("docs/vidtube_openapi.yaml")


def main() -> None:
    spec_dict = app.openapi()
    OUTPUT_PATH.parent.mkdir(parents=True, exist_ok=True)
    OUTPUT_PATH.write_text(yaml.safe_dump(spec_dict, sort_keys=False))
    print(f"✔ OpenAPI spec written to {OUTPUT_PATH}")


if __name__ == "__main__":
    main()
