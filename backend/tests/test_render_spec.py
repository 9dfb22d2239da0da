"""
Tests for render specification parsing and single-page slicing
"""
import pytest

from pdf_export.models.render_spec import RenderSpec, referenced_image_ids, single_page_spec

from fakes import make_payload


class TestRenderSpec:
    """Test camelCase parsing and page slicing"""

    def setup_method(self):
        payload = make_payload(pages=3)
        payload["pages"][1]["backgroundState"] = {"imageId": "bg", "color": "#ffeecc"}
        payload["pages"][1]["stickerStates"] = [{"id": "s1", "imageId": "star", "x": 5, "y": 5}]
        payload["images"] += [{"id": "bg", "src": "bg.png"}, {"id": "star", "src": "star.png"}]
        payload["settings"] = {"pdfExport": {"compressionLevel": "extreme"}}
        payload["customField"] = {"kept": True}
        self.spec = RenderSpec.model_validate(payload)

    def test_parses_camel_case(self):
        assert self.spec.canvas_width == 200
        assert self.spec.total_pages == 3
        assert self.spec.should_compress is True
        assert self.spec.pages[0].panel_states[0].image_id == "img-0"
        assert self.spec.compression_level("recommended") == "extreme"

    def test_compression_level_default(self):
        spec = RenderSpec.model_validate(make_payload(pages=1))
        assert spec.compression_level("low") == "low"

    def test_referenced_image_ids(self):
        assert referenced_image_ids(self.spec.pages[1]) == {"img-1", "bg", "star"}

    def test_single_page_spec_keeps_only_referenced_images(self):
        page = single_page_spec(self.spec, 1)

        assert page.total_pages == 1
        assert page.pages[0] == self.spec.pages[1]
        assert page.current_page_index == 0
        assert sorted(image.id for image in page.images) == ["bg", "img-1", "star"]
        assert page.canvas_width == self.spec.canvas_width
        assert page.compression_level("recommended") == "extreme"

    def test_single_page_spec_does_not_mutate_source(self):
        single_page_spec(self.spec, 0)
        assert self.spec.total_pages == 3
        assert len(self.spec.images) == 6

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_single_page_spec_out_of_range(self, index):
        with pytest.raises(IndexError):
            single_page_spec(self.spec, index)

    def test_null_element_lists_are_empty(self):
        payload = make_payload(pages=1)
        payload["pages"][0].update({"panelStates": None, "stickerStates": None, "textBubbles": None})

        spec = RenderSpec.model_validate(payload)
        page = spec.pages[0]

        assert page.panel_states == []
        assert page.sticker_states == []
        assert page.text_bubbles == []
        assert single_page_spec(spec, 0).images == []
