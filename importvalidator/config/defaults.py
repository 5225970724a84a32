"""Built-in defaults for the npm import validator.

Curated lists consumed by the specifier and framework classifiers, the
unused-dependency skip list and the workspace scanner.
"""

from typing import FrozenSet, Tuple

# Specifier prefixes that resolve to project code rather than a package.
COMMON_PATH_ALIASES: Tuple[str, ...] = (
    "~",
    "src/",
    "components/",
    "pages/",
    "utils/",
    "hooks/",
    "lib/",
    "assets/",
    "styles/",
    "config/",
    "constants/",
)

# Well-known packages reported as framework imports.
COMMON_FRAMEWORKS: Tuple[str, ...] = (
    # React ecosystem
    "react",
    "react-dom",
    "react-router",
    "react-router-dom",
    "react-query",
    "react-hook-form",
    "react-redux",
    "redux",
    "redux-toolkit",
    "@reduxjs/toolkit",
    "recoil",
    "jotai",
    "zustand",
    "formik",
    "react-select",
    "react-table",
    "react-spring",
    "framer-motion",
    # Next.js ecosystem
    "next",
    "next-auth",
    "next-i18next",
    "next-seo",
    "next-themes",
    # UI libraries
    "@mui/material",
    "@mui/icons-material",
    "@emotion/react",
    "@emotion/styled",
    "styled-components",
    "tailwindcss",
    "twin.macro",
    "antd",
    "chakra-ui",
    "@chakra-ui/react",
    "@mantine/core",
    "bootstrap",
    "reactstrap",
    # Data fetching
    "swr",
    "axios",
    "graphql",
    "apollo-client",
    "@apollo/client",
    "urql",
    # Node.js frameworks
    "express",
    "koa",
    "fastify",
    "nest",
    "@nestjs/core",
    "hapi",
    "restify",
    # Database
    "prisma",
    "@prisma/client",
    "mongoose",
    "sequelize",
    "typeorm",
    "knex",
    "drizzle-orm",
    # Testing
    "jest",
    "@testing-library/react",
    "@testing-library/jest-dom",
    "cypress",
    "playwright",
    # Build tools
    "webpack",
    "rollup",
    "vite",
    "esbuild",
    "parcel",
    # Utilities
    "lodash",
    "date-fns",
    "dayjs",
    "zod",
    "yup",
    "uuid",
    "nanoid",
)

FRAMEWORK_PREFIXES: Tuple[str, ...] = ("react-", "next-", "@react/", "@next/")

# Tooling that is declared in manifests but rarely imported from source.
COMMON_DEV_TOOLS: FrozenSet[str] = frozenset(
    {
        "typescript",
        "eslint",
        "prettier",
        "jest",
        "mocha",
        "chai",
        "webpack",
        "babel",
        "rollup",
        "vite",
        "esbuild",
        "postcss",
        "tailwindcss",
        "autoprefixer",
        "nodemon",
        "ts-node",
        "husky",
        "lint-staged",
        "rimraf",
        "concurrently",
        "cross-env",
        "dotenv",
        "clsx",
        "classnames",
    }
)

DEV_TOOL_PREFIXES: Tuple[str, ...] = ("@types/", "@babel/", "@typescript-eslint/")
DEV_TOOL_SUBSTRINGS: Tuple[str, ...] = (
    "eslint",
    "prettier",
    "babel",
    "jest",
    "webpack",
    "stylelint",
    "vitest",
)
DEV_TOOL_SUFFIXES: Tuple[str, ...] = ("-loader", "-plugin", "-preset")
DEV_TOOL_INFIXES: Tuple[str, ...] = ("-loader-", "-plugin-", "-preset-")

# Node.js built-in modules, imported without the ``node:`` scheme.
NODE_BUILTIN_MODULES: FrozenSet[str] = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)

SOURCE_SUFFIXES: Tuple[str, ...] = (
    ".js",
    ".mjs",
    ".cjs",
    ".jsx",
    ".ts",
    ".tsx",
    ".mts",
    ".cts",
)

DEFAULT_INCLUDE_PATTERNS: Tuple[str, ...] = tuple(f"*{suffix}" for suffix in SOURCE_SUFFIXES)

DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    "node_modules/",
    "dist/",
    "build/",
    "coverage/",
    "out/",
    ".next/",
    "tmp/",
    "*.min.js",
    "*.bundle.js",
    "*.d.ts",
)

MANIFEST_FILENAME = "package.json"
