"""Tests for syntax sketches."""

from exemplar_lint.models import Language
from exemplar_lint.sketch import build_sketch


def _call(sketch, name):
    return next(c for c in sketch.calls if c.name == name)


class TestPythonSketch:
    """Tests for Python tokenization."""

    def test_dotted_calls(self):
        sketch = build_sketch("result = requests.get(url)\n", Language.PYTHON)
        assert [c.name for c in sketch.calls] == ["requests.get"]

    def test_definitions_are_not_calls(self):
        sketch = build_sketch("def eval(x):\n    return x\n", Language.PYTHON)
        assert sketch.calls == []

    def test_comments_removed(self):
        sketch = build_sketch("x = 1  # eval(x)\n", Language.PYTHON)
        assert sketch.calls == []
        assert sketch.code_lines[0] == "x = 1"

    def test_fstring_interpolation(self):
        sketch = build_sketch('a = f"id = {x}"\nb = "plain {x}"\nc = f"{{literal}}"\n', Language.PYTHON)
        strings = [t for t in sketch.tokens if t.kind == "string"]
        assert [t.interpolated for t in strings] == [True, False, False]

    def test_async_spans(self):
        text = (
            "async def fetch():\n"
            "    time.sleep(1)\n"
            "\n"
            "def sync():\n"
            "    time.sleep(1)\n"
        )
        sketch = build_sketch(text, Language.PYTHON)
        first, second = [c for c in sketch.calls if c.name == "time.sleep"]

        assert sketch.in_async(first.open_index)
        assert not sketch.in_async(second.open_index)

    def test_nested_sync_function_inside_async(self):
        text = (
            "async def outer():\n"
            "    def inner():\n"
            "        time.sleep(1)\n"
            "    return inner\n"
        )
        sketch = build_sketch(text, Language.PYTHON)
        assert not sketch.in_async(_call(sketch, "time.sleep").open_index)

    def test_many_functions_end_at_the_next_definition(self):
        text = "".join(
            f"{'async ' if n % 2 else ''}def f{n}():\n    time.sleep({n})\n\n" for n in range(50)
        )
        sketch = build_sketch(text, Language.PYTHON)
        sleeps = [c for c in sketch.calls if c.name == "time.sleep"]

        assert [sketch.in_async(c.open_index) for c in sleeps] == [n % 2 == 1 for n in range(50)]
        assert [f.line for f in sketch.functions] == [3 * n + 1 for n in range(50)]
        for span, following in zip(sketch.functions, sketch.functions[1:]):
            assert sketch.tokens[span.end_index].line < following.line

    def test_multiline_signature(self):
        text = "async def f(\n    a,\n):\n    time.sleep(1)\n"
        sketch = build_sketch(text, Language.PYTHON)
        assert sketch.in_async(_call(sketch, "time.sleep").open_index)

    def test_first_argument(self):
        sketch = build_sketch("cursor.execute(sql, (a, b))\n", Language.PYTHON)
        argument = sketch.first_argument(_call(sketch, "cursor.execute"))
        assert [t.text for t in argument] == ["sql"]

    def test_unbalanced_input(self):
        sketch = build_sketch('foo(bar, "unterminated\n', Language.PYTHON)
        call = _call(sketch, "foo")
        assert call.close_index == len(sketch.tokens) - 1


class TestTypescriptSketch:
    """Tests for TypeScript tokenization."""

    def test_async_function_and_plain_function(self):
        text = (
            "async function load() {\n"
            '  const data = fs.readFileSync("x");\n'
            "}\n"
            "function ok() {\n"
            '  fs.readFileSync("y");\n'
            "}\n"
        )
        sketch = build_sketch(text, Language.TYPESCRIPT)
        first, second = [c for c in sketch.calls if c.name == "fs.readFileSync"]

        assert sketch.in_async(first.open_index)
        assert not sketch.in_async(second.open_index)

    def test_async_arrow_function(self):
        text = "const h = async (req) => {\n  fs.readFileSync('a');\n};\n"
        sketch = build_sketch(text, Language.TYPESCRIPT)
        assert sketch.in_async(_call(sketch, "fs.readFileSync").open_index)

    def test_template_literal(self):
        sketch = build_sketch("const q = `a ${b}`;\nconst r = `plain`;\n", Language.TYPESCRIPT)
        strings = [t for t in sketch.tokens if t.kind == "string"]
        assert [t.interpolated for t in strings] == [True, False]

    def test_comments_removed(self):
        sketch = build_sketch("// eval(x)\n/* eval(y) */ ok();\n", Language.TYPESCRIPT)
        assert [c.name for c in sketch.calls] == ["ok"]


class TestClojureSketch:
    """Tests for Clojure tokenization."""

    def test_calls_and_go_blocks(self):
        sketch = build_sketch("(go (Thread/sleep 10))\n(Thread/sleep 5)\n", Language.CLOJURE)
        inside, outside = [c for c in sketch.calls if c.name == "Thread/sleep"]

        assert [c.name for c in sketch.calls] == ["go", "Thread/sleep", "Thread/sleep"]
        assert sketch.in_async(inside.open_index)
        assert not sketch.in_async(outside.open_index)

    def test_comments_and_strings(self):
        sketch = build_sketch('; (eval x)\n(println "(eval y)")\n', Language.CLOJURE)
        assert [c.name for c in sketch.calls] == ["println"]


def test_other_language_is_empty():
    sketch = build_sketch("rm -rf /\n", Language.OTHER)
    assert sketch.tokens == []
    assert sketch.calls == []
    assert sketch.lines == ["rm -rf /", ""]
