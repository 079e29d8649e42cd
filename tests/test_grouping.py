from approvals.blueprint import build_blueprint
from approvals.grouping import parallel_groups

from conftest import make_task


def test_singletons_are_not_groups(abc_blueprint):
    assert [g.earliest_start for g in parallel_groups(abc_blueprint.tasks)] == [3]


def test_groups_ordered_by_start_and_blueprint_order():
    catalog = [
        make_task("root", 2),
        make_task("x", 4, ["root"]),
        make_task("y", 1, ["root"]),
        make_task("z", 3, ["root"]),
        make_task("solo", 2),
        make_task("after_y", 1, ["y"]),
        make_task("after_solo", 1, ["solo"]),
    ]
    groups = parallel_groups(build_blueprint(catalog).tasks)

    assert [(g.earliest_start, g.task_ids) for g in groups] == [
        (0, ["root", "solo"]),
        (2, ["x", "y", "z", "after_solo"]),
    ]


def test_grouping_leaves_timings_untouched(abc_blueprint):
    before = [(st.earliest_start, st.earliest_finish) for st in abc_blueprint.tasks]
    parallel_groups(abc_blueprint.tasks)
    assert [(st.earliest_start, st.earliest_finish) for st in abc_blueprint.tasks] == before


def test_no_groups_for_pure_chain():
    catalog = [make_task("a", 1), make_task("b", 1, ["a"]), make_task("c", 1, ["b"])]
    assert parallel_groups(build_blueprint(catalog).tasks) == []
