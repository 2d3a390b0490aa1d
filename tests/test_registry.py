import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from imageworkshop.tools.registry import (
    TOOL_REGISTRY,
    ToolDescriptor,
    get_tool_by_name,
    get_tool_by_path,
    tool_definitions,
    validate_registry,
)

EXPECTED_TOOLS = {
    "txt2img_stable_diffusion",
    "edit_erase",
    "edit_inpaint",
    "edit_outpaint",
    "edit_search_and_replace",
    "edit_search_and_recolor",
    "edit_remove_background",
    "control_sketch",
    "control_structure",
    "control_style",
    "style_transfer",
}


def _tool(name, required=(), properties=None):
    return ToolDescriptor(
        name=name,
        description="test tool",
        input_schema={"type": "object", "properties": properties or {}, "required": list(required)},
        backend_ref="TestFunction",
        invocation_path=f"/tools/{name}",
    )


class TestRegistry(unittest.TestCase):
    def test_catalogue(self) -> None:
        self.assertEqual({tool.name for tool in TOOL_REGISTRY}, EXPECTED_TOOLS)

    def test_entries_are_complete(self) -> None:
        for tool in TOOL_REGISTRY:
            self.assertTrue(tool.description, tool.name)
            self.assertEqual(tool.input_schema["type"], "object")
            self.assertTrue(tool.backend_ref.endswith("Function"), tool.name)
            self.assertTrue(tool.invocation_path.startswith("/tools/"), tool.name)
            for key in tool.input_schema.get("required", []):
                self.assertIn(key, tool.input_schema["properties"])

    def test_paths_and_refs_are_unique(self) -> None:
        self.assertEqual(len({t.invocation_path for t in TOOL_REGISTRY}), len(TOOL_REGISTRY))
        self.assertEqual(len({t.backend_ref for t in TOOL_REGISTRY}), len(TOOL_REGISTRY))

    def test_definition_hides_deployment_details(self) -> None:
        definition = get_tool_by_name("edit_inpaint").definition()
        self.assertEqual(set(definition), {"name", "description", "inputSchema"})
        self.assertEqual(definition["inputSchema"]["required"], ["image", "prompt", "mask"])

    def test_lookup(self) -> None:
        self.assertEqual(get_tool_by_name("style_transfer").backend_ref, "ToolStyleTransferFunction")
        self.assertIsNone(get_tool_by_name("nope"))
        self.assertEqual(get_tool_by_path("tools/edit-outpaint/").name, "edit_outpaint")
        self.assertIsNone(get_tool_by_path("/tools/unknown"))

    def test_tool_definitions_order(self) -> None:
        names = [d["name"] for d in tool_definitions()]
        self.assertEqual(names, [t.name for t in TOOL_REGISTRY])

    def test_validate_rejects_duplicates(self) -> None:
        with self.assertRaises(ValueError):
            validate_registry([_tool("a"), _tool("a")])

    def test_validate_rejects_dangling_required(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            validate_registry([_tool("a", required=["prompt"])])
        self.assertIn("prompt", str(ctx.exception))

    def test_validate_accepts_registry(self) -> None:
        validate_registry(TOOL_REGISTRY)


if __name__ == "__main__":
    unittest.main()
