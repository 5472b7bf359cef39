"""Tests for the C / C++ rule table."""

from codelens.engine import count_improvements
from codelens.languages import RuleFamily
from codelens.rules.cpp import refactor_cpp


class TestModernization:
    """Test declaration and pointer rewrites."""

    def test_null_to_nullptr(self):
        assert refactor_cpp("Node* head = NULL;") == "Node* head = nullptr;"

    def test_template_declaration_to_auto(self):
        text = "std::vector<int> values = load_values();"
        assert refactor_cpp(text) == "auto values = load_values();"

    def test_brace_initializer_kept(self):
        text = "std::vector<int> values = {1, 2, 3};"
        assert refactor_cpp(text) == text

    def test_typedef_to_using(self):
        assert refactor_cpp("typedef unsigned long ulong;") == "using ulong = unsigned long;"

    def test_make_unique_with_delete(self):
        text = '#include <string>\nvoid run() {\n    Widget* w = new Widget(3);\n    w->draw();\n    delete w;\n}'
        result = refactor_cpp(text)
        assert "    auto w = std::make_unique<Widget>(3);" in result
        assert "delete w" not in result
        assert result.startswith("#include <string>\n#include <memory>\n")

    def test_new_without_delete_kept(self):
        text = "Widget* w = new Widget();\nregistry.adopt(w);"
        assert "new Widget()" in refactor_cpp(text)

    def test_push_back_to_emplace_back(self):
        assert refactor_cpp("names.push_back(name);") == "names.emplace_back(name);"

    def test_structured_binding(self):
        text = "auto key = entry.first; auto value = entry.second;"
        assert refactor_cpp(text) == "auto [key, value] = entry;"


class TestLoops:
    """Test index loops rewritten as range-based for."""

    def test_index_loop_to_range_for(self):
        text = "for (int i = 0; i < items.size(); i++) {\n    std::cout << items[i];\n}"
        expected = "for (const auto& element : items) {\n    std::cout << element;\n}"
        assert refactor_cpp(text) == expected

    def test_mutated_element_uses_reference(self):
        text = "for (size_t i = 0; i < items.size(); ++i) {\n    items[i] *= 2;\n}"
        assert refactor_cpp(text) == "for (auto& element : items) {\n    element *= 2;\n}"

    def test_index_still_used_kept(self):
        text = "for (int i = 0; i < items.size(); i++) {\n    out[i] = items[i];\n}"
        assert refactor_cpp(text) == text


class TestExceptions:
    """Test catch-clause rewrites."""

    def test_empty_catch_logged(self):
        text = "try {\n    run();\n} catch (std::exception& e) {}"
        result = refactor_cpp(text)
        assert 'catch (const std::exception& e) {\n    std::cerr << "Error: " << e.what() << std::endl;\n}' in result
        assert result.startswith("#include <iostream>\n")

    def test_catch_all_logged(self):
        result = refactor_cpp("try { run(); } catch (...) {}")
        assert 'catch (...) {\n    std::cerr << "Unknown error" << std::endl;\n}' in result

    def test_catch_by_value_to_reference(self):
        text = "try { run(); } catch (Failure f) { report(f); }"
        assert "catch (const Failure& f)" in refactor_cpp(text)

    def test_existing_include_not_duplicated(self):
        text = "#include <iostream>\ntry { run(); } catch (...) {}"
        assert refactor_cpp(text).count("#include <iostream>") == 1


class TestCounting:
    """Test the C++ improvement checklist."""

    def test_counts_nullptr_and_auto(self):
        original = "Node* head = NULL;\nstd::map<int, int> counts = build();"
        count, improvements = count_improvements(original, refactor_cpp(original), RuleFamily.CPP)
        assert count >= 2
        assert "Replaced NULL with nullptr" in improvements
