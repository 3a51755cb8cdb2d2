from codestorm.access.permissions import (
    Permission, ROLE_PERMISSIONS, expand_inherited, has_all, has_any, has_hierarchical,
    has_permission, role_display_name,
)
from codestorm.access.routes import RouteDescriptor


def test_membership_predicates():
    held = {100, 200}
    assert has_permission(held, 200)
    assert not has_permission(held, 300)
    assert has_any(held, [300, 200])
    assert not has_any(held, [300, 500])
    assert has_all(held, [100, 200])
    assert not has_all(held, [100, 300])


def test_empty_requirement_sets():
    assert has_all(set(), [])
    assert has_all({100}, [])
    assert not has_any({100}, [])


def test_hierarchy_grants_children_of_held_parent():
    assert has_hierarchical({Permission.CONTEST_CONTROL}, Permission.TIMER_CONTROL)
    assert has_hierarchical({Permission.PROBLEMS}, Permission.ADD_SUBMISSION)
    assert not has_hierarchical({Permission.TIMER_CONTROL}, Permission.CONTEST_CONTROL)
    assert not has_hierarchical({Permission.JUDGE_QUEUE}, Permission.TIMER_CONTROL)


def test_hierarchy_walks_multiple_levels():
    parents = {3: 2, 2: 1}
    assert has_hierarchical({1}, 3, parents)
    assert not has_hierarchical({4}, 3, parents)


def test_cyclic_hierarchy_terminates():
    parents = {1: 2, 2: 3, 3: 1}
    assert not has_hierarchical({9}, 1, parents)
    assert has_hierarchical({3}, 1, parents)


def test_expand_inherited():
    expanded = expand_inherited({Permission.CONTEST_CONTROL})
    assert {810, 820, 830, 840, 850, 860} <= expanded
    assert Permission.CONTEST_CONTROL in expanded
    assert Permission.PROBLEMS not in expanded


def test_expand_inherited_keeps_unrelated_codes():
    assert expand_inherited({100, 4242}) == frozenset({100, 4242})


def test_role_permissions():
    assert Permission.ADD_SUBMISSION in ROLE_PERMISSIONS['participant']
    assert Permission.JUDGE_QUEUE not in ROLE_PERMISSIONS['participant']
    assert ROLE_PERMISSIONS['admin'] == frozenset(Permission)


def test_role_display_name():
    assert role_display_name('admin') == 'Administrator'
    assert role_display_name('Judge') == 'Judge'
    assert role_display_name('participant') == 'Participant'
    assert role_display_name('sponsor') == 'sponsor'


def test_route_descriptor_wire_format():
    route = RouteDescriptor('/judge', 'JudgeQueue', [320, 300], 'Judge Queue', 'Gavel', priority=2)

    assert route.required_permissions == frozenset({300, 320})
    data = route.to_dict()
    assert data == {
        'path': '/judge',
        'component': 'JudgeQueue',
        'title': 'Judge Queue',
        'icon': 'Gavel',
        'requiredPermissions': [300, 320],
        'priority': 2,
    }
    assert RouteDescriptor.from_dict(data) == route


def test_route_descriptor_from_minimal_dict():
    route = RouteDescriptor.from_dict({'path': '/about'})
    assert route.required_permissions == frozenset()
    assert route.priority is None
    assert 'priority' not in route.to_dict()
