"""
Unit tests for the Visitor use cases.
"""

import pytest

from pattern_catalog.behavioral.visitor.ast_compiler import (
    Assign,
    BinaryOp,
    Block,
    ConstantFolder,
    Evaluator,
    Number,
    PrettyPrinter,
    StackCodeGenerator,
    Variable,
    run_stack_code,
    sample_program,
)
from pattern_catalog.behavioral.visitor.document_export import (
    HtmlExporter,
    MarkdownExporter,
    WordCountVisitor,
    sample_document,
)
from pattern_catalog.behavioral.visitor.file_system import (
    ExtensionCounter,
    PermissionAuditor,
    SearchVisitor,
    SizeCalculator,
    sample_tree,
)
from pattern_catalog.exceptions import ResourceNotFoundException, UnsupportedTypeException


class TestAstVisitors:
    """Tests for the expression visitors."""

    def test_evaluate_program(self):
        """Test evaluation with an environment."""
        evaluator = Evaluator({"price": 10, "discount": 5})
        assert sample_program().accept(evaluator) == 65
        assert evaluator.env["rate"] == 7

    def test_unknown_variable(self):
        """Test reading an unbound variable."""
        with pytest.raises(ResourceNotFoundException):
            Variable("x").accept(Evaluator())

    def test_divide_by_zero(self):
        """Test division by zero propagates."""
        with pytest.raises(ZeroDivisionError):
            BinaryOp("/", Number(1), Number(0)).accept(Evaluator())

    def test_unknown_operator(self):
        """Test unsupported operators are rejected at construction."""
        with pytest.raises(UnsupportedTypeException):
            BinaryOp("%", Number(1), Number(2))

    def test_pretty_print(self):
        """Test printing with parentheses."""
        expr = Assign("y", BinaryOp("*", Variable("x"), BinaryOp("+", Number(1), Number(2.5))))
        assert expr.accept(PrettyPrinter()) == "y = (x * (1 + 2.5))"

    def test_constant_folding_returns_new_tree(self):
        """Test folding replaces constant sub-trees and leaves the original alone."""
        original = BinaryOp("*", Variable("x"), BinaryOp("+", Number(2), Number(3)))
        folded = original.accept(ConstantFolder())
        assert folded == BinaryOp("*", Variable("x"), Number(5))
        assert original.right == BinaryOp("+", Number(2), Number(3))

    def test_folding_keeps_division_by_zero(self):
        """Test folding does not evaluate a zero division."""
        expr = BinaryOp("/", Number(1), Number(0))
        assert expr.accept(ConstantFolder()) == expr

    def test_code_generation(self):
        """Test stack code for an assignment."""
        code = Assign("z", BinaryOp("-", Variable("a"), Number(1))).accept(StackCodeGenerator())
        assert code == ["LOAD a", "PUSH 1", "SUB", "STORE z"]

    def test_generated_code_matches_evaluation(self):
        """Test compiled and interpreted results agree."""
        env = {"price": 4, "discount": 1}
        code = sample_program().accept(StackCodeGenerator())
        assert run_stack_code(code, env)["total"] == sample_program().accept(Evaluator(env))

    def test_block_returns_last(self):
        """Test a block evaluates to its last statement."""
        block = Block((Assign("a", Number(1)), BinaryOp("+", Variable("a"), Number(1))))
        assert block.accept(Evaluator()) == 2


class TestFileSystemVisitors:
    """Tests for the file system visitors."""

    @pytest.fixture
    def tree(self):
        """Sample server tree."""
        return sample_tree()

    def test_size(self, tree):
        """Test total size and file count."""
        visitor = SizeCalculator()
        tree.accept(visitor)
        assert visitor.files == 7
        assert visitor.total == 4200 + 1300 + 900 + 52000 + 180000 + 640000 + 12000

    def test_extensions(self, tree):
        """Test extension counts."""
        visitor = ExtensionCounter()
        tree.accept(visitor)
        assert visitor.as_dict() == {".log": 2, ".md": 1, ".pdf": 1, ".png": 1, ".py": 2}

    def test_search(self, tree):
        """Test glob search returns full paths."""
        visitor = SearchVisitor("*.py")
        tree.accept(visitor)
        assert visitor.matches == ["srv/app/main.py", "srv/app/settings.py"]

    def test_permission_audit(self, tree):
        """Test world-writable files and directories are reported."""
        visitor = PermissionAuditor()
        tree.accept(visitor)
        assert len(visitor.findings) == 2
        assert visitor.findings[0].startswith("srv/app/settings.py")
        assert visitor.findings[1].startswith("srv/uploads/")


class TestDocumentExport:
    """Tests for document export visitors."""

    def test_html(self):
        """Test HTML export escapes and tags elements."""
        output = sample_document().export(HtmlExporter())
        assert "<h1>Getting started</h1>" in output
        assert "&amp;" in output
        assert '<code class="language-bash">' in output
        assert "<ul><li>Creational</li>" in output

    def test_markdown(self):
        """Test Markdown export."""
        output = sample_document().export(MarkdownExporter())
        assert "## Categories" in output
        assert "```bash" in output
        assert "- Functional" in output

    def test_word_count_skips_code(self):
        """Test only prose words are counted."""
        counter = WordCountVisitor()
        sample_document().export(counter)
        assert counter.words == 2 + 11 + 1 + 4
