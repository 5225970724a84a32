import pytest

from importvalidator.models import SpecifierKind
from importvalidator.parsers.npm.specifier import classify, extract_package_name, normalize_aliases


@pytest.mark.parametrize(
    "specifier",
    [
        "./foo",
        "../shared/util",
        "/absolute/path",
        "~/x",
        "src/components/Button",
        "components/Header",
        "utils/format",
        "@components",
        "@/store",
        "node:fs",
        "fs",
        "fs/promises",
        "path",
        "https://cdn.skypack.dev/preact",
        "virtual:pwa-register",
        "#internal/config",
        "",
        "   ",
    ],
)
def test_local_specifiers(specifier: str) -> None:
    assert classify(specifier).is_local


@pytest.mark.parametrize(
    "specifier, package",
    [
        ("react", "react"),
        ("lodash/get", "lodash"),
        ("@scope/pkg", "@scope/pkg"),
        ("@babel/core/lib/config", "@babel/core"),
        ("axios/dist/node/axios.cjs", "axios"),
        ("left-pad", "left-pad"),
        ("hooks-lib", "hooks-lib"),
    ],
)
def test_external_specifiers(specifier: str, package: str) -> None:
    classification = classify(specifier)

    assert classification.kind is SpecifierKind.EXTERNAL
    assert classification.package_name == package


def test_classification_is_total_and_exclusive() -> None:
    for specifier in ["./a", "@x/y", "@x", "lodash/fp", "~", "src/", "node:url", "a:b"]:
        classification = classify(specifier)
        assert classification.is_local != classification.is_external


def test_external_package_names_never_contain_paths() -> None:
    for specifier in ["@a/b/c/d", "pkg/a/b", "@org/tool/bin"]:
        name = classify(specifier).package_name
        assert name.count("/") == (1 if name.startswith("@") else 0)


def test_configured_aliases() -> None:
    aliases = normalize_aliases(["@app", "shared/", " ", "~"])

    assert aliases == ("@app", "shared/", "~")
    assert classify("@app/models/user", aliases).is_local
    assert classify("@app", aliases).is_local
    assert classify("shared/date", aliases).is_local
    assert classify("@apple/ui", aliases).package_name == "@apple/ui"
    # Default aliases no longer apply once a custom list is given.
    assert classify("utils/format", aliases).package_name == "utils"


def test_classify_is_memoized() -> None:
    first = classify("react-query/devtools")
    second = classify("react-query/devtools")

    assert first is second


def test_extract_package_name() -> None:
    assert extract_package_name("@babel/core/lib/x") == "@babel/core"
    assert extract_package_name("axios/dist/node") == "axios"
    assert extract_package_name("react") == "react"
    assert extract_package_name("@scope") == "@scope"
