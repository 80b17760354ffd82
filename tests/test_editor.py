import pytest

from estateview.domain.editor import (
    IDLE,
    DraggingHotspot,
    DraggingPolygon,
    DraggingVertex,
    PolygonEditor,
)
from estateview.domain.geometry import Point
from estateview.domain.selections import Hotspot, Polygon, SelectionDetails


@pytest.fixture
def editor():
    """1000x1000 editor holding one 100px square at the origin (id 1)"""
    editor = PolygonEditor(1000, 1000)
    editor.load([
        Polygon(id=1, points=(Point(0, 0), Point(0.1, 0), Point(0.1, 0.1), Point(0, 0.1))),
    ])
    return editor


@pytest.fixture
def link_calls():
    return []


@pytest.fixture
def linking_editor(link_calls):
    editor = PolygonEditor(800, 600, on_link_requested=lambda *args: link_calls.append(args))
    editor.load([])
    return editor


class TestLoading:
    def test_load_scales_to_surface(self, editor):
        points = editor.get_polygon(1).points
        assert points[2].x == pytest.approx(100)
        assert points[2].y == pytest.approx(100)

    def test_load_resets_history(self, editor):
        assert len(editor.history) == 1
        assert not editor.history.can_undo

    def test_export_is_relative(self, editor):
        (exported,) = editor.export_relative()
        assert exported.points[1].x == pytest.approx(0.1)
        assert exported.points[1].y == pytest.approx(0)

    def test_zero_surface(self):
        """Nothing is added or exported before the surface has a size"""
        editor = PolygonEditor(0, 0)
        editor.load([Polygon(id=1, points=(Point(0, 0), Point(1, 0), Point(1, 1)))])
        assert editor.polygons == []
        assert editor.add_polygon() is None
        assert editor.export_relative() == []


class TestDiscreteEdits:
    def test_add_polygon_spans_middle(self):
        editor = PolygonEditor(1000, 500)
        polygon = editor.add_polygon()
        assert polygon.points[0] == Point(200, 100)
        assert polygon.points[2] == Point(800, 400)
        assert editor.selected_id == polygon.id

    def test_new_ids_are_unique(self):
        editor = PolygonEditor(1000, 500)
        ids = {editor.add_polygon().id for _ in range(5)}
        assert len(ids) == 5

    def test_history_grows_by_one_per_commit(self):
        editor = PolygonEditor(1000, 500)
        for _ in range(3):
            editor.add_polygon()
        assert len(editor.history) == 4
        assert editor.history.index == 3

    def test_delete_selected(self, editor):
        editor.select(1)
        assert editor.delete_selected()
        assert editor.polygons == []
        assert editor.selected_id is None

    def test_delete_without_selection(self, editor):
        assert not editor.delete_selected()
        assert len(editor.history) == 1

    def test_select_unknown_polygon_is_ignored(self, editor):
        editor.select(1)
        editor.select(999)
        assert editor.selected_id == 1


class TestEdgeInsertion:
    def test_click_near_edge_inserts_vertex(self, editor):
        """(50, 1) is 1px from the top edge: inserted right after vertex 0"""
        assert editor.insert_vertex(1, Point(50, 1))
        points = editor.get_polygon(1).points
        assert len(points) == 5
        assert points[1] == Point(50, 1)
        assert editor.history.can_undo

    def test_click_far_from_edges_is_ignored(self, editor):
        """(50, 50) is 50px from every edge"""
        assert not editor.insert_vertex(1, Point(50, 50))
        assert len(editor.get_polygon(1).points) == 4
        assert len(editor.history) == 1

    def test_closing_edge_wraps(self, editor):
        """The edge from the last point back to the first is eligible"""
        assert editor.insert_vertex(1, Point(2, 50))
        points = editor.get_polygon(1).points
        assert points[-1] == Point(2, 50)

    def test_degenerate_edge(self):
        editor = PolygonEditor(100, 100)
        editor.load([Polygon(id=3, points=(Point(0.5, 0.5), Point(0.5, 0.5), Point(0.9, 0.9)))])
        assert editor.insert_vertex(3, Point(52, 50))
        assert len(editor.get_polygon(3).points) == 4


class TestUndo:
    def test_undo_restores_previous_snapshot(self, editor):
        editor.select(1)
        editor.delete_selected()
        assert editor.undo()
        assert [p.id for p in editor.polygons] == [1]
        assert editor.selected_id is None

    def test_undo_stops_at_oldest(self, editor):
        editor.insert_vertex(1, Point(50, 1))
        assert editor.undo()
        assert not editor.undo()
        assert len(editor.get_polygon(1).points) == 4

    def test_commit_after_undo_drops_future(self, editor):
        editor.insert_vertex(1, Point(50, 1))
        editor.insert_vertex(1, Point(99, 50))
        editor.undo()
        editor.add_polygon()
        assert len(editor.history) == 3
        assert editor.history.index == 2


class TestDragging:
    def test_polygon_drag_follows_pointer_without_drift(self):
        editor = PolygonEditor(1000, 800)
        polygon = editor.add_polygon()
        start = polygon.points

        editor.begin_polygon_drag(polygon.id, Point(300, 300))
        assert isinstance(editor.drag_state, DraggingPolygon)
        for step in range(1, 21):
            editor.pointer_move(Point(300 + step, 300 + step / 2))

        moved = editor.get_polygon(polygon.id).points
        for before, after in zip(start, moved):
            assert after.x == pytest.approx(before.x + 20)
            assert after.y == pytest.approx(before.y + 10)

    def test_moves_do_not_touch_history(self):
        editor = PolygonEditor(1000, 800)
        polygon = editor.add_polygon()
        editor.begin_polygon_drag(polygon.id, Point(300, 300))
        editor.pointer_move(Point(350, 350))
        editor.pointer_move(Point(360, 360))
        assert len(editor.history) == 2

        assert editor.pointer_up()
        assert len(editor.history) == 3
        assert editor.drag_state is IDLE

    def test_release_without_movement_commits_nothing(self):
        editor = PolygonEditor(1000, 800)
        polygon = editor.add_polygon()
        editor.begin_polygon_drag(polygon.id, Point(300, 300))
        assert not editor.pointer_up()
        assert len(editor.history) == 2

    def test_pointer_events_while_idle_are_inert(self, editor):
        before = editor.polygons
        editor.pointer_move(Point(500, 500))
        assert not editor.pointer_up()
        assert editor.polygons == before

    def test_vertex_drag_and_magnifier(self, editor):
        editor.begin_vertex_drag(1, 2, Point(100, 100))
        assert isinstance(editor.drag_state, DraggingVertex)
        editor.pointer_move(Point(140, 120))
        assert editor.get_polygon(1).points[2] == Point(140, 120)

        lens = editor.magnifier()
        assert lens is not None
        assert (lens.left, lens.top) == (140 - 75, 120 - 75)
        assert lens.zoom == 2.5

        editor.pointer_up()
        assert editor.magnifier() is None

    def test_undo_after_drag(self, editor):
        editor.begin_vertex_drag(1, 0, Point(0, 0))
        editor.pointer_move(Point(-20, -20))
        editor.pointer_up()
        editor.undo()
        assert editor.get_polygon(1).points[0] == Point(0, 0)


class TestResize:
    def test_resize_rescales_polygons_and_history(self, editor):
        editor.insert_vertex(1, Point(50, 1))
        editor.resize(500, 500)
        assert editor.get_polygon(1).points[2].x == pytest.approx(50)
        editor.undo()
        assert editor.get_polygon(1).points[2].x == pytest.approx(50)

    def test_resize_to_zero_is_ignored(self, editor):
        editor.resize(0, 500)
        assert editor.width == 1000


class TestSaveDetails:
    def test_details_are_stored_and_committed(self, linking_editor, link_calls):
        polygon = linking_editor.add_polygon()
        assert linking_editor.save_details(polygon.id, SelectionDetails(title="Lobby"))
        assert linking_editor.get_polygon(polygon.id).details.title == "Lobby"
        assert len(linking_editor.history) == 3
        assert link_calls == []

    def test_entity_link_is_requested(self, linking_editor, link_calls):
        polygon = linking_editor.add_polygon()
        details = SelectionDetails(title="A 101", make_as_entity=True, entity_type="Apartment")
        linking_editor.save_details(polygon.id, details)
        assert link_calls == [("A 101", "entity", "Apartment")]

    def test_view_link_is_requested(self, linking_editor, link_calls):
        polygon = linking_editor.add_polygon()
        linking_editor.save_details(polygon.id, SelectionDetails(title="Floor 2", make_as_view=True))
        assert link_calls == [("Floor 2", "view", None)]

    def test_one_selection_per_linked_entity(self, linking_editor):
        first = linking_editor.add_polygon()
        second = linking_editor.add_polygon()
        details = SelectionDetails(title="A 101", make_as_entity=True)
        linking_editor.save_details(first.id, details)
        linking_editor.save_details(second.id, details)
        assert [p.id for p in linking_editor.polygons] == [second.id]

    def test_failing_link_keeps_annotation(self):
        def fail(*_):
            raise RuntimeError("name taken")

        editor = PolygonEditor(800, 600, on_link_requested=fail)
        polygon = editor.add_polygon()
        with pytest.raises(RuntimeError):
            editor.save_details(polygon.id, SelectionDetails(title="X", make_as_view=True))
        assert editor.get_polygon(polygon.id).details.title == "X"

    def test_unknown_polygon(self, linking_editor):
        assert not linking_editor.save_details(42, SelectionDetails(title="Lobby"))


class TestHotspots:
    def test_add_at_surface_centre(self):
        editor = PolygonEditor(1000, 500)
        polygon = editor.add_polygon()
        hotspot = editor.add_hotspot()
        assert hotspot.position == Point(500, 250)
        assert not hotspot.is_linked
        assert hotspot.id != polygon.id
        assert editor.selected_hotspot_id == hotspot.id
        assert editor.selected_id is None
        assert len(editor.history) == 3

    def test_zero_surface(self):
        editor = PolygonEditor(0, 0)
        assert editor.add_hotspot() is None
        assert editor.hotspots == []

    def test_load_and_export_are_relative(self):
        editor = PolygonEditor(800, 400)
        editor.load([], [Hotspot(id=3, position=Point(0.25, 0.5), linked_view_id="lobby")])
        assert editor.get_hotspot(3).position == Point(200, 200)

        (exported,) = editor.export_relative_hotspots()
        assert exported.position == Point(0.25, 0.5)
        assert exported.linked_view_id == "lobby"

    def test_drag_commits_once_on_release(self):
        editor = PolygonEditor(1000, 500)
        hotspot = editor.add_hotspot()
        assert editor.begin_hotspot_drag(hotspot.id, Point(510, 250))
        assert isinstance(editor.drag_state, DraggingHotspot)
        editor.pointer_move(Point(610, 300))
        editor.pointer_move(Point(710, 350))
        assert len(editor.history) == 2

        assert editor.pointer_up()
        assert editor.get_hotspot(hotspot.id).position == Point(700, 350)
        assert len(editor.history) == 3
        assert editor.magnifier() is None

    def test_release_without_movement_commits_nothing(self):
        editor = PolygonEditor(1000, 500)
        hotspot = editor.add_hotspot()
        editor.begin_hotspot_drag(hotspot.id, Point(500, 250))
        assert not editor.pointer_up()

    def test_undo_shares_history_with_polygons(self):
        editor = PolygonEditor(1000, 500)
        polygon = editor.add_polygon()
        hotspot = editor.add_hotspot()
        editor.begin_hotspot_drag(hotspot.id, Point(500, 250))
        editor.pointer_move(Point(100, 100))
        editor.pointer_up()

        assert editor.undo()
        assert editor.get_hotspot(hotspot.id).position == Point(500, 250)
        assert editor.undo()
        assert editor.hotspots == []
        assert [p.id for p in editor.polygons] == [polygon.id]

    def test_delete_selected_hotspot(self):
        editor = PolygonEditor(1000, 500)
        editor.add_hotspot()
        assert editor.delete_selected_hotspot()
        assert editor.hotspots == []
        assert editor.selected_hotspot_id is None
        assert not editor.delete_selected_hotspot()

    def test_link_commits(self):
        editor = PolygonEditor(1000, 500)
        hotspot = editor.add_hotspot()
        assert editor.link_hotspot(hotspot.id, "tower-a__lobby")
        assert editor.get_hotspot(hotspot.id).linked_view_id == "tower-a__lobby"
        assert len(editor.history) == 3
        assert not editor.link_hotspot(42, "tower-a__lobby")

    def test_selecting_a_polygon_clears_the_hotspot(self):
        editor = PolygonEditor(1000, 500)
        polygon = editor.add_polygon()
        hotspot = editor.add_hotspot()
        editor.select(polygon.id)
        assert editor.selected_hotspot_id is None
        editor.select_hotspot(hotspot.id)
        assert editor.selected_id is None

    def test_resize_moves_hotspots(self):
        editor = PolygonEditor(1000, 500)
        hotspot = editor.add_hotspot()
        editor.resize(500, 1000)
        assert editor.get_hotspot(hotspot.id).position == Point(250, 500)
        assert editor.history.current.hotspots[0].position == Point(250, 500)


def test_state_json(editor):
    editor.begin_vertex_drag(1, 0, Point(0, 0))
    state = editor.to_json()
    assert state["drag"] == "vertex"
    assert state["selectedId"] == 1
    assert state["historyLength"] == 1
    assert state["magnifier"] is not None
    assert state["polygons"][0]["id"] == 1
    assert state["hotspots"] == []
    assert state["selectedHotspotId"] is None
