"""Well-known license names and canonical URLs."""

from typing import Dict, NamedTuple


class LicenseInfo(NamedTuple):
    name: str
    url: str


LICENSES: Dict[str, LicenseInfo] = {
    "apache-2.0": LicenseInfo("Apache 2.0", "https://www.apache.org/licenses/LICENSE-2.0"),
    "mit": LicenseInfo("MIT License", "https://opensource.org/licenses/MIT"),
    "bsd-3-clause": LicenseInfo(
        "BSD 3-Clause License", "https://opensource.org/licenses/BSD-3-Clause"
    ),
    "bsd-2-clause": LicenseInfo(
        "BSD 2-Clause License", "https://opensource.org/licenses/BSD-2-Clause"
    ),
    "gpl-3.0": LicenseInfo("GPL 3.0", "https://www.gnu.org/licenses/gpl-3.0.html"),
    "gpl-2.0": LicenseInfo(
        "GPL 2.0", "https://www.gnu.org/licenses/old-licenses/gpl-2.0.html"
    ),
    "lgpl-3.0": LicenseInfo("LGPL 3.0", "https://www.gnu.org/licenses/lgpl-3.0.html"),
    "lgpl-2.1": LicenseInfo(
        "LGPL 2.1", "https://www.gnu.org/licenses/old-licenses/lgpl-2.1.html"
    ),
    "cc-by-4.0": LicenseInfo(
        "Creative Commons Attribution 4.0", "https://creativecommons.org/licenses/by/4.0/"
    ),
    "cc-by-sa-4.0": LicenseInfo(
        "Creative Commons Attribution-ShareAlike 4.0",
        "https://creativecommons.org/licenses/by-sa/4.0/",
    ),
    "cc-by-nc-4.0": LicenseInfo(
        "Creative Commons Attribution-NonCommercial 4.0",
        "https://creativecommons.org/licenses/by-nc/4.0/",
    ),
    "cc0-1.0": LicenseInfo(
        "Creative Commons Zero v1.0 Universal",
        "https://creativecommons.org/publicdomain/zero/1.0/",
    ),
    "unlicense": LicenseInfo("The Unlicense", "https://unlicense.org/"),
    "llama2": LicenseInfo(
        "Llama 2 Community License",
        "https://github.com/facebookresearch/llama/blob/main/LICENSE",
    ),
    "llama3": LicenseInfo(
        "Llama 3 Community License",
        "https://github.com/meta-llama/llama-models/blob/main/models/llama3/LICENSE",
    ),
    "llama3.1": LicenseInfo(
        "Llama 3.1 Community License",
        "https://github.com/meta-llama/llama-models/blob/main/models/llama3_1/LICENSE",
    ),
    "llama3.2": LicenseInfo(
        "Llama 3.2 Community License",
        "https://github.com/meta-llama/llama-models/blob/main/models/llama3_2/LICENSE",
    ),
    "llama3.3": LicenseInfo(
        "Llama 3.3 Community License",
        "https://github.com/meta-llama/llama-models/blob/main/models/llama3_3/LICENSE",
    ),
    "llama4": LicenseInfo(
        "Llama 4 Community License",
        "https://github.com/meta-llama/llama-models/blob/main/models/llama4/LICENSE",
    ),
    "bigscience-openrail-m": LicenseInfo(
        "BigScience OpenRAIL-M", "https://huggingface.co/spaces/bigscience/license"
    ),
    "openrail": LicenseInfo("OpenRAIL", "https://www.licenses.ai/ai-licenses"),
    "gemma": LicenseInfo("Gemma", "https://ai.google.dev/gemma/terms"),
}


def get_license_url(license_id: str) -> str:
    """Return the canonical URL for a well-known license, or an empty string."""
    info = LICENSES.get(license_id.strip().lower())
    return info.url if info else ""


def get_human_readable_license_name(license_id: str) -> str:
    """Return the display name for a license id.

    Unknown ids are returned as given, minus surrounding whitespace.
    """
    license_id = license_id.strip()
    info = LICENSES.get(license_id.lower())
    return info.name if info else license_id
