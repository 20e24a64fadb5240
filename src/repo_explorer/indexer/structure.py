"""
Shallow code-structure index: classes, functions, imports, exports.

This is a lexical approximation, not a parser. Each language family has
a StructuralExtractor that turns file content into FileFacts using line
and pattern matching; analyze_code_structure aggregates the facts of all
files into a CodeStructureIndex. False positives and misses are expected
(keywords inside strings, unbalanced braces, unusual formatting). A real
parser can be dropped in by implementing StructuralExtractor and passing
it in ``extractors``; nothing else depends on how facts are obtained.
"""

import re
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import structlog

from .tree import FileStructure, read_text_file

logger = structlog.get_logger()

TOP_IMPORTED_MODULES = 20

_IDENT = r"[A-Za-z_$][A-Za-z0-9_$]*"

# Names that the patterns below pick up but are never declarations
KEYWORDS: frozenset[str] = frozenset({
    "if", "else", "return", "const", "let", "var", "this", "function", "class",
    "for", "while", "switch", "catch", "do", "new", "typeof", "await", "async",
    "default", "case", "super", "import", "export", "from", "static", "get", "set",
    "try", "throw", "delete", "void", "yield", "in", "of", "instanceof",
})

# React state hooks (useState, useEffect...) and setters (setCount...)
HOOK_OR_SETTER_RE = re.compile(r"^(?:use|set)[A-Z]")

# Declaration words that EXPORT_RE can mistake for the exported name
EXPORT_EXCLUDED: frozenset[str] = KEYWORDS | frozenset({"type", "interface", "enum", "abstract"})


# --- Data structures ---

@dataclass
class ClassInfo:
    name: str
    file: str
    extends: str | None = None
    methods: list[str] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)


@dataclass
class FunctionInfo:
    name: str
    file: str
    exported: bool


@dataclass
class ModuleCount:
    module: str
    count: int


@dataclass
class CodeStructureIndex:
    """Aggregated structure of a repository."""

    classes: list[ClassInfo] = field(default_factory=list)
    functions: list[FunctionInfo] = field(default_factory=list)
    imports: dict[str, list[str]] = field(default_factory=dict)
    exports: dict[str, list[str]] = field(default_factory=dict)
    most_imported_modules: list[ModuleCount] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CodeStructureIndex":
        return cls(
            classes=[ClassInfo(**c) for c in data["classes"]],
            functions=[FunctionInfo(**f) for f in data["functions"]],
            imports={k: list(v) for k, v in data["imports"].items()},
            exports={k: list(v) for k, v in data["exports"].items()},
            most_imported_modules=[ModuleCount(**m) for m in data["most_imported_modules"]],
        )


@dataclass
class FileFacts:
    """What an extractor found in a single file.

    ``imports`` has one entry per import statement (repeats included);
    ``functions`` holds (name, exported) pairs.
    """

    imports: list[str] = field(default_factory=list)
    classes: list[ClassInfo] = field(default_factory=list)
    functions: list[tuple[str, bool]] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)


def _unique(items: Sequence[str]) -> list[str]:
    """Deduplicate keeping first-seen order."""
    return list(dict.fromkeys(items))


def extract_brace_body(content: str, start: int) -> str:
    """Text between the first ``{`` at or after ``start`` and its matching ``}``.

    Depth starts at 1 on the opening brace and the body ends when it
    returns to 0. With unbalanced braces the body runs to the end of the
    content. Braces inside strings and comments are counted too.
    """
    open_pos = content.find("{", start)
    if open_pos == -1:
        return ""

    depth = 1
    for i in range(open_pos + 1, len(content)):
        char = content[i]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return content[open_pos + 1:i]
    return content[open_pos + 1:]


# --- Extractors ---

class StructuralExtractor(ABC):
    """Lexical structure extraction for one language family."""

    name: str
    extensions: frozenset[str]

    def handles(self, rel_path: str) -> bool:
        return PurePosixPath(rel_path).suffix.lower() in self.extensions

    @abstractmethod
    def extract(self, content: str, rel_path: str) -> FileFacts:
        """Extract the structural facts of one file.

        Never raises for odd input; returns whatever could be recognized.
        """


class BraceLanguageExtractor(StructuralExtractor):
    """JavaScript/TypeScript plus the brace-delimited JVM and Swift languages.

    Recognizes ES module imports, CommonJS require, qualified imports
    (``import a.b.C;``), class declarations with their brace-delimited
    bodies, top-level function declarations (including arrow functions
    bound with const/let/var) and export declarations.
    """

    name = "brace"
    extensions = frozenset({
        ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".java", ".kt", ".swift",
    })

    IMPORT_FROM_RE = re.compile(r"\bimport\s+.*?\s+from\s+['\"]([^'\"]+)['\"]")
    SIDE_EFFECT_IMPORT_RE = re.compile(r"^\s*import\s+['\"]([^'\"]+)['\"]")
    REQUIRE_RE = re.compile(r"\brequire\s*\(\s*['\"]([^'\"]+)['\"]\s*\)")
    QUALIFIED_IMPORT_RE = re.compile(r"^\s*import\s+(?:static\s+)?([A-Za-z_][\w.]*(?:\.\*)?)\s*;?\s*$")

    CLASS_RE = re.compile(rf"\bclass\s+({_IDENT})\s*(?:extends\s+({_IDENT}(?:\.{_IDENT})*))?")
    METHOD_RE = re.compile(
        rf"(?:async\s+)?({_IDENT})\s*\([^)]*\)\s*(?::\s*[\w$<>\[\]., |]+)?\s*\{{"
    )
    PROPERTY_RE = re.compile(rf"({_IDENT})\s*[=:](?![=:>])")

    FUNCTION_RE = re.compile(
        rf"^(export\s+(?:default\s+)?)?(?:async\s+)?(?:function\*?|fun|func|const|let|var)\s+({_IDENT})\s*"
        rf"(?:<[^>\n]*>\s*)?"
        rf"(?:\(|(?::[^=\n]*)?=\s*(?:async\s*)?(?:\([^)]*\)|{_IDENT})\s*(?::[^=\n]*)?=>|=\s*(?:async\s+)?function\b)",
        re.MULTILINE,
    )
    EXPORT_RE = re.compile(
        rf"\bexport\s+(?:default\s+)?(?:async\s+)?"
        rf"(?:const|let|var|class|function\*?|interface|type|enum|abstract\s+class)?\s*({_IDENT})"
    )
    EXPORT_LIST_RE = re.compile(r"\bexport\s*\{([^}]*)\}")

    def extract(self, content: str, rel_path: str) -> FileFacts:
        facts = FileFacts()
        facts.imports = self._imports(content)

        for match in self.CLASS_RE.finditer(content):
            body = extract_brace_body(content, match.end())
            facts.classes.append(ClassInfo(
                name=match.group(1),
                file=rel_path,
                extends=match.group(2),
                methods=_unique([
                    m for m in self.METHOD_RE.findall(body) if m not in KEYWORDS
                ]),
                properties=_unique([
                    p for p in self.PROPERTY_RE.findall(body) if p not in KEYWORDS
                ]),
            ))

        for match in self.FUNCTION_RE.finditer(content):
            name = match.group(2)
            if name in KEYWORDS or HOOK_OR_SETTER_RE.match(name):
                continue
            facts.functions.append((name, match.group(1) is not None))

        exports = [name for name in self.EXPORT_RE.findall(content) if name not in EXPORT_EXCLUDED]
        for match in self.EXPORT_LIST_RE.finditer(content):
            for item in match.group(1).split(","):
                words = item.split()
                if words:
                    exports.append(words[-1])
        exports += [name for name, exported in facts.functions if exported]
        facts.exports = _unique(exports)

        return facts

    def _imports(self, content: str) -> list[str]:
        modules: list[str] = []
        for line in content.splitlines():
            match = self.IMPORT_FROM_RE.search(line) or self.SIDE_EFFECT_IMPORT_RE.search(line)
            if match:
                modules.append(match.group(1))
            else:
                match = self.QUALIFIED_IMPORT_RE.match(line)
                if match:
                    modules.append(match.group(1))
            modules.extend(self.REQUIRE_RE.findall(line))
        return modules


class PythonExtractor(StructuralExtractor):
    """Python, using indentation instead of braces for class bodies.

    A function is exported when it is listed in ``__all__``, or, when the
    module has no ``__all__``, when its name does not start with ``_``.
    """

    name = "python"
    extensions = frozenset({".py", ".pyi"})

    IMPORT_RE = re.compile(r"^\s*import\s+(.+?)\s*$")
    FROM_IMPORT_RE = re.compile(r"^\s*from\s+(\.*[\w.]*)\s+import\b")
    CLASS_RE = re.compile(r"^([ \t]*)class\s+([A-Za-z_]\w*)\s*(?:\(([^)]*)\))?\s*:", re.MULTILINE)
    METHOD_RE = re.compile(r"^[ \t]+(?:async\s+)?def\s+([A-Za-z_]\w*)", re.MULTILINE)
    SELF_ATTR_RE = re.compile(r"\bself\.([A-Za-z_]\w*)\s*(?::[^=\n]*)?=(?!=)")
    FUNCTION_RE = re.compile(r"^(?:async\s+)?def\s+([A-Za-z_]\w*)", re.MULTILINE)
    ALL_RE = re.compile(r"^__all__\s*(?::[^=\n]*)?=\s*[\[(]([^\])]*)[\])]", re.MULTILINE)
    QUOTED_NAME_RE = re.compile(r"['\"]([A-Za-z_]\w*)['\"]")

    def extract(self, content: str, rel_path: str) -> FileFacts:
        facts = FileFacts()
        lines = content.splitlines()

        for line in lines:
            match = self.FROM_IMPORT_RE.match(line)
            if match:
                facts.imports.append(match.group(1))
                continue
            match = self.IMPORT_RE.match(line)
            if match:
                for item in match.group(1).split(","):
                    words = item.split()
                    if words:
                        facts.imports.append(words[0])

        top_level_classes: list[str] = []
        for match in self.CLASS_RE.finditer(content):
            indent, name, bases = match.group(1), match.group(2), match.group(3)
            body = self._indented_body(content, match.end(), len(indent))
            facts.classes.append(ClassInfo(
                name=name,
                file=rel_path,
                extends=self._first_base(bases),
                methods=_unique(self.METHOD_RE.findall(body)),
                properties=_unique(self._class_attributes(body) + self.SELF_ATTR_RE.findall(body)),
            ))
            if not indent:
                top_level_classes.append(name)

        declared_all = self._declared_all(content)
        for name in self.FUNCTION_RE.findall(content):
            if declared_all is not None:
                exported = name in declared_all
            else:
                exported = not name.startswith("_")
            facts.functions.append((name, exported))

        if declared_all is not None:
            facts.exports = _unique(declared_all)
        else:
            facts.exports = _unique(
                [name for name in top_level_classes if not name.startswith("_")]
                + [name for name, exported in facts.functions if exported]
            )
        return facts

    @staticmethod
    def _indented_body(content: str, start: int, class_indent: int) -> str:
        """Lines after the class header indented deeper than the header."""
        body_lines: list[str] = []
        for line in content[start:].splitlines()[1:]:
            stripped = line.strip()
            if stripped and len(line) - len(line.lstrip()) <= class_indent:
                break
            body_lines.append(line)
        return "\n".join(body_lines)

    @staticmethod
    def _first_base(bases: str | None) -> str | None:
        if not bases:
            return None
        for base in bases.split(","):
            base = base.strip()
            if base and "=" not in base:
                return base
        return None

    @staticmethod
    def _class_attributes(body: str) -> list[str]:
        """Names assigned at the first indentation level of the body."""
        lines = [line for line in body.splitlines() if line.strip()]
        if not lines:
            return []
        indent = len(lines[0]) - len(lines[0].lstrip())
        pattern = re.compile(rf"^[ \t]{{{indent}}}([A-Za-z_]\w*)\s*(?::[^=\n]*)?=(?!=)")
        return [m.group(1) for line in lines if (m := pattern.match(line))]

    def _declared_all(self, content: str) -> list[str] | None:
        match = self.ALL_RE.search(content)
        if not match:
            return None
        return self.QUOTED_NAME_RE.findall(match.group(1))


DEFAULT_EXTRACTORS: tuple[StructuralExtractor, ...] = (
    BraceLanguageExtractor(),
    PythonExtractor(),
)


def analyze_code_structure(
    repo_path: Path,
    structure: FileStructure,
    extractors: Sequence[StructuralExtractor] = DEFAULT_EXTRACTORS,
) -> CodeStructureIndex:
    """Build the CodeStructureIndex of a repository.

    Also fills ``imported_modules`` and ``exported_symbols`` on the file
    entries of ``structure``.

    Args:
        repo_path: Working tree root
        structure: Result of scan_file_structure (updated in place)
        extractors: Extractors tried in order; the first that handles a
            file's extension is used

    Returns:
        CodeStructureIndex, best-effort
    """
    repo_path = Path(repo_path)
    index = CodeStructureIndex()
    import_counts: Counter[str] = Counter()

    for rel_path, entry in structure.files.items():
        extractor = next((e for e in extractors if e.handles(rel_path)), None)
        if extractor is None:
            continue

        content = read_text_file(repo_path / rel_path)
        if content is None:
            logger.warning("structure.file_skipped", file=rel_path, reason="unreadable or binary")
            continue

        facts = extractor.extract(content, rel_path)

        for module in facts.imports:
            import_counts[module] += 1
            importers = index.imports.setdefault(module, [])
            if rel_path not in importers:
                importers.append(rel_path)
        entry.imported_modules = _unique(facts.imports)

        index.classes.extend(facts.classes)
        index.functions.extend(
            FunctionInfo(name=name, file=rel_path, exported=exported)
            for name, exported in facts.functions
        )

        for symbol in facts.exports:
            exporters = index.exports.setdefault(symbol, [])
            if rel_path not in exporters:
                exporters.append(rel_path)
        if facts.exports:
            entry.exported_symbols = list(facts.exports)

    index.most_imported_modules = [
        ModuleCount(module=module, count=count)
        for module, count in import_counts.most_common(TOP_IMPORTED_MODULES)
    ]
    return index
