import pytest

from estateview.domain.filters import Filters
from estateview.domain.geometry import Point, Rect
from estateview.domain.selections import Hotspot, Polygon, SelectionDetails
from estateview.services.viewer_service import build_overlay, details_anchor, hit_hotspot, hit_test

NATURAL = (1920, 1080)
CONTAINER = (800, 800)
LEFT_HALF = (Point(0, 0), Point(0.5, 0), Point(0.5, 1), Point(0, 1))
RIGHT_HALF = (Point(0.5, 0), Point(1, 0), Point(1, 1), Point(0.5, 1))


def _linked(polygon_id, points, title):
    return Polygon(
        id=polygon_id,
        points=points,
        details=SelectionDetails(title=title, make_as_entity=True, entity_type="Apartment"),
    )


@pytest.fixture
def facade(project_service, compound):
    """Tower A facade: A 101 on the left half, A 102 on the right, plus a draft"""
    view = project_service.add_view(compound, "tower-a", "Facade", "2d")
    project_service.save_selections(
        compound,
        "tower-a",
        view.id,
        [
            _linked(1, LEFT_HALF, "A 101"),
            _linked(2, RIGHT_HALF, "A 102"),
            Polygon(id=3, points=LEFT_HALF),
        ],
    )
    return view.id


@pytest.fixture
def aerial(project_service, compound):
    view = project_service.add_view(compound, "sunrise-compound", "Aerial", "2d")
    tower = Polygon(
        id=10,
        points=LEFT_HALF,
        details=SelectionDetails(title="Tower A", make_as_entity=True, entity_type="residential building"),
    )
    project_service.save_selections(compound, "sunrise-compound", view.id, [tower])
    return view.id


@pytest.fixture
def plan(project_service, compound, facade):
    """Tower A plan: A 101 on the left half and three hotspots across the middle"""
    view = project_service.add_view(compound, "tower-a", "Plan", "2d")
    project_service.save_selections(
        compound,
        "tower-a",
        view.id,
        [_linked(1, LEFT_HALF, "A 101")],
        [
            Hotspot(id=20, position=Point(0.5, 0.5), linked_view_id=facade),
            Hotspot(id=21, position=Point(0.25, 0.5)),
            Hotspot(id=22, position=Point(0.75, 0.5), linked_view_id="demolished"),
        ],
    )
    return view.id


class TestOverlay:
    def test_selections_follow_letterboxed_image(self, viewer_service, compound, facade):
        overlay = viewer_service.overlay(compound, facade, NATURAL, CONTAINER)
        assert overlay.rect.to_json() == pytest.approx({"x": 0, "y": 175, "width": 800, "height": 450})
        assert not overlay.filters_applied

        first = overlay.selections[0]
        assert first.points[2].to_json() == pytest.approx({"x": 400, "y": 625})
        assert first.center.to_json() == pytest.approx({"x": 200, "y": 400})

    def test_drafts_are_hidden(self, viewer_service, compound, facade):
        overlay = viewer_service.overlay(compound, facade, NATURAL, CONTAINER)
        assert [s.selection.id for s in overlay.selections] == [1, 2]

    def test_tones_follow_status(self, viewer_service, compound, facade):
        overlay = viewer_service.overlay(compound, facade, NATURAL, CONTAINER)
        assert [s.tone for s in overlay.selections] == ["available", "sold"]

    def test_filters_drop_selections_without_matches(self, viewer_service, compound, facade):
        overlay = viewer_service.overlay(
            compound, facade, NATURAL, CONTAINER, Filters(availability="available")
        )
        assert [s.entity.id for s in overlay.selections] == ["a-101"]
        assert overlay.selections[0].match_count == 1

    def test_parent_selection_counts_descendants(self, viewer_service, compound, aerial):
        overlay = viewer_service.overlay(
            compound, aerial, NATURAL, CONTAINER, Filters(min_price=100000)
        )
        (tower,) = overlay.selections
        assert tower.entity.id == "tower-a"
        assert tower.match_count == 2
        assert tower.tone == "default"

    def test_container_not_measured(self, viewer_service, compound, facade):
        overlay = viewer_service.overlay(compound, facade, NATURAL, (0, 0))
        assert overlay.rect is None
        assert overlay.selections == []


class TestHitTesting:
    def test_click_resolves_selection(self, viewer_service, compound, facade):
        hit = viewer_service.hit(compound, facade, NATURAL, CONTAINER, Point(100, 400))
        assert hit["kind"] == "selection"
        assert hit["selection"]["id"] == 1
        assert hit["entity"]["id"] == "a-101"
        assert hit["details"]["title"] == "A 101"
        assert hit["anchor"]["side"] == "right"
        assert hit["anchor"]["top"] == pytest.approx(175)
        assert hit["anchor"]["left"] == pytest.approx(416)

    def test_right_side_selection_opens_panel_on_the_left(self, viewer_service, compound, facade):
        hit = viewer_service.hit(compound, facade, NATURAL, CONTAINER, Point(700, 400))
        assert hit["entity"]["id"] == "a-102"
        assert hit["anchor"]["side"] == "left"
        assert hit["anchor"]["right"] == pytest.approx(416)

    def test_click_in_letterbox_band(self, viewer_service, compound, facade):
        assert viewer_service.hit(compound, facade, NATURAL, CONTAINER, Point(100, 100)) is None

    def test_topmost_selection_wins(self):
        rect = Rect(0, 0, 100, 100)
        overlay = build_overlay(
            [_linked(1, LEFT_HALF, "Below"), _linked(2, LEFT_HALF, "Above")],
            None,
            [],
            rect,
            Filters(),
        )
        assert hit_test(overlay, Point(10, 10)).selection.id == 2


def test_anchor_without_points():
    assert details_anchor(Polygon(id=1, points=()), Rect(0, 0, 10, 10), 10) is None


class TestHotspotMarkers:
    def test_markers_follow_letterboxed_image(self, viewer_service, compound, plan):
        overlay = viewer_service.overlay(compound, plan, NATURAL, CONTAINER)
        assert [h.hotspot.id for h in overlay.hotspots] == [20, 21, 22]
        assert overlay.hotspots[0].position.to_json() == pytest.approx({"x": 400, "y": 400})
        assert overlay.to_json()["hotspots"][1]["linkedViewId"] is None

    def test_labels_name_the_target_view(self, viewer_service, compound, plan):
        overlay = viewer_service.overlay(compound, plan, NATURAL, CONTAINER)
        assert [h.label for h in overlay.hotspots] == ["Facade", "Unlinked Hotspot", "Link"]

    def test_filters_do_not_hide_markers(self, viewer_service, compound, plan):
        overlay = viewer_service.overlay(
            compound, plan, NATURAL, CONTAINER, Filters(availability="sold")
        )
        assert overlay.selections == []
        assert len(overlay.hotspots) == 3

    def test_click_on_marker_navigates(self, viewer_service, compound, facade, plan):
        hit = viewer_service.hit(compound, plan, NATURAL, CONTAINER, Point(395, 410))
        assert hit["kind"] == "hotspot"
        assert hit["navigateTo"] == facade

    def test_marker_above_selection(self, viewer_service, compound, plan):
        hit = viewer_service.hit(compound, plan, NATURAL, CONTAINER, Point(205, 410))
        assert hit["kind"] == "hotspot"
        assert hit["navigateTo"] is None

        hit = viewer_service.hit(compound, plan, NATURAL, CONTAINER, Point(100, 400))
        assert hit["kind"] == "selection"
        assert hit["entity"]["id"] == "a-101"


def test_topmost_marker_wins():
    overlay = build_overlay(
        [],
        None,
        [],
        Rect(0, 0, 100, 100),
        Filters(),
        [Hotspot(id=1, position=Point(0.5, 0.5)), Hotspot(id=2, position=Point(0.55, 0.5))],
    )
    assert hit_hotspot(overlay, Point(52, 50)).hotspot.id == 2
    assert hit_hotspot(overlay, Point(52, 90)) is None
    assert hit_hotspot(overlay, Point(52, 90), radius=45).hotspot.id == 2
