import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from core.aligner import Aligner, classify_pairing
from core.comparison_graph import MoveState, NodeStatus
from core.equality import ContentStatus
from core.rules import ComparisonMode, Rule, RuleSet
from core.xml_node import element
from core.xml_parser import XMLParser

SAMPLE = '''<catalog version="2">
  <book id="1" lang="en"><title>Dune</title><price>9.99</price></book>
  <book id="2" lang="fr"><title>Vendredi</title></book>
  <magazine issue="7">Monthly</magazine>
  <note><![CDATA[a < b]]></note>
</catalog>'''


def _children(graph, root_handle=None):
    """Map child name -> (status, moved_state) under the root."""
    root = graph.node(graph.root if root_handle is None else root_handle)
    result = {}
    for handle in root.children:
        node = graph.node(handle)
        result[node.name] = (node.status, node.moved_state)
    return result


def _identity_rules(node_name='item', attribute='id'):
    rules = RuleSet()
    rules.create_rule(node_name, [node_name]).add_identity_attribute(attribute)
    return rules


def _unordered_rules(mode=ComparisonMode.STRICT_ANY):
    return RuleSet(Rule(mode=mode, order_significant=False))


@pytest.mark.parametrize('content,left,right,ordered,expected', [
    (ContentStatus.IDENTICAL, 1, 1, True, (NodeStatus.UNCHANGED, MoveState.NONE)),
    (ContentStatus.UPDATED, 1, 1, True, (NodeStatus.UPDATED, MoveState.NONE)),
    (ContentStatus.IDENTICAL, 0, 1, False, (NodeStatus.UNCHANGED, MoveState.DOWN)),
    (ContentStatus.IDENTICAL, 1, 0, False, (NodeStatus.UNCHANGED, MoveState.UP)),
    (ContentStatus.UPDATED, 0, 1, False, (NodeStatus.UPDATED, MoveState.DOWN_AND_UPDATED)),
    (ContentStatus.UPDATED, 1, 0, False, (NodeStatus.UPDATED, MoveState.UP_AND_UPDATED)),
    (ContentStatus.IDENTICAL, 0, 1, True, (NodeStatus.UPDATED, MoveState.DOWN_THEN_UPDATED)),
    (ContentStatus.UPDATED, 1, 0, True, (NodeStatus.UPDATED, MoveState.UP_THEN_UPDATED)),
])
def test_classify_pairing(content, left, right, ordered, expected):
    assert classify_pairing(content, left, right, ordered) == expected


def test_classify_pairing_rejects_different_nodes():
    with pytest.raises(ValueError):
        classify_pairing(ContentStatus.DIFFERENT, 0, 0, True)


def test_order_significant_pure_reorder_is_reported_as_updated():
    left = element('root', children=[element('X'), element('Y')])
    right = element('root', children=[element('Y'), element('X')])
    graph, differences = Aligner().align(left, right)
    assert _children(graph) == {
        'X': (NodeStatus.UPDATED, MoveState.DOWN_THEN_UPDATED),
        'Y': (NodeStatus.UPDATED, MoveState.UP_THEN_UPDATED),
    }
    assert [n.name for n in differences] == ['X', 'Y']
    assert graph.node(graph.root).status is NodeStatus.UNCHANGED
    assert graph.node(graph.root).has_different_descendant


def test_pure_reorder_without_order_significance_is_a_move():
    left = element('root', children=[element('X'), element('Y')])
    right = element('root', children=[element('Y'), element('X')])
    graph, differences = Aligner(_unordered_rules()).align(left, right)
    assert _children(graph) == {
        'X': (NodeStatus.UNCHANGED, MoveState.DOWN),
        'Y': (NodeStatus.UNCHANGED, MoveState.UP),
    }
    assert len(differences) == 0
    assert not graph.node(graph.root).has_different_descendant


def test_reorder_with_content_change():
    left = element('root', children=[element('b'), element('a', {'v': '1'})])
    right = element('root', children=[element('a', {'v': '2'}), element('b')])

    graph, _ = Aligner(_unordered_rules(ComparisonMode.SAME_NAME)).align(left, right)
    assert _children(graph) == {
        'b': (NodeStatus.UNCHANGED, MoveState.DOWN),
        'a': (NodeStatus.UPDATED, MoveState.UP_AND_UPDATED),
    }

    graph, _ = Aligner(RuleSet(Rule(mode=ComparisonMode.SAME_NAME))).align(left, right)
    assert _children(graph) == {
        'b': (NodeStatus.UPDATED, MoveState.DOWN_THEN_UPDATED),
        'a': (NodeStatus.UPDATED, MoveState.UP_THEN_UPDATED),
    }


def test_identity_match_with_content_change():
    left = element('root', children=[element('item', {'id': '1', 'v': 'x'})])
    right = element('root', children=[element('item', {'id': '1', 'v': 'y'})])
    graph, differences = Aligner(_identity_rules()).align(left, right)
    assert _children(graph) == {'item': (NodeStatus.UPDATED, MoveState.NONE)}
    assert len(differences) == 1


def test_identity_mismatch_is_delete_and_insert():
    left = element('root', children=[element('item', {'id': '1'})])
    right = element('root', children=[element('item', {'id': '2'})])
    graph, differences = Aligner(_identity_rules()).align(left, right)
    root = graph.node(graph.root)
    statuses = [graph.node(h).status for h in root.children]
    assert statuses == [NodeStatus.DELETED, NodeStatus.NEW]
    assert len(differences) == 2


def test_identity_reorder_is_tracked():
    left = element('root', children=[element('item', {'id': '1'}), element('item', {'id': '2'})])
    right = element('root', children=[element('item', {'id': '2'}), element('item', {'id': '1'})])
    graph, _ = Aligner(_identity_rules()).align(left, right)
    root = graph.node(graph.root)
    first = graph.node(root.children[0])
    second = graph.node(root.children[1])
    assert graph.right_of(first).node is right.children[1]
    assert first.moved_state is MoveState.DOWN_THEN_UPDATED
    assert graph.right_of(second).node is right.children[0]
    assert second.moved_state is MoveState.UP_THEN_UPDATED


def test_first_fit_takes_first_acceptable_candidate():
    rules = RuleSet(Rule(mode=ComparisonMode.SAME_NAME))
    left = element('root', children=[element('a', {'v': '2'})])
    right = element('root', children=[element('a', {'v': '1'}), element('a', {'v': '2'})])
    graph, _ = Aligner(rules).align(left, right)
    root = graph.node(graph.root)
    first = graph.node(root.children[0])
    assert graph.right_of(first).node is right.children[0]
    assert first.status is NodeStatus.UPDATED
    assert first.moved_state is MoveState.NONE
    added = graph.node(root.children[1])
    assert added.status is NodeStatus.NEW
    assert graph.left_of(added).is_phantom


def test_deleted_child_gets_phantom_on_right():
    left = element('root', children=[element('A')])
    right = element('root')
    graph, differences = Aligner().align(left, right)
    child = graph.node(graph.node(graph.root).children[0])
    assert child.status is NodeStatus.DELETED
    assert graph.right_of(child).is_phantom
    assert graph.projected_names(False) == [(0, 'root', False), (1, 'A', True)]
    assert [n.name for n in differences] == ['A']


def test_inserted_child_gets_phantom_on_left():
    left = element('root')
    right = element('root', children=[element('A')])
    graph, _ = Aligner().align(left, right)
    child = graph.node(graph.node(graph.root).children[0])
    assert child.status is NodeStatus.NEW
    assert graph.left_of(child).is_phantom
    assert graph.projected_names(True) == [(0, 'root', False), (1, 'A', True)]


def test_phantom_follows_previous_sibling_counterpart():
    left = element('root', children=[element('a'), element('b'), element('c')])
    right = element('root', children=[element('a'), element('c')])
    graph, _ = Aligner().align(left, right)
    assert graph.projected_names(False) == [
        (0, 'root', False), (1, 'a', False), (1, 'b', True), (1, 'c', False),
    ]
    assert graph.projected_names(True) == [
        (0, 'root', False), (1, 'a', False), (1, 'b', False), (1, 'c', False),
    ]
    assert _children(graph)['c'] == (NodeStatus.UPDATED, MoveState.UP_THEN_UPDATED)


def test_deleted_subtree_cascades():
    left = element('root', children=[element('A', children=[element('B'), element('C')])])
    right = element('root')
    graph, differences = Aligner().align(left, right)
    assert [(n.name, n.status) for n in differences] == [
        ('A', NodeStatus.DELETED), ('B', NodeStatus.DELETED), ('C', NodeStatus.DELETED),
    ]
    assert graph.projected_names(False) == [
        (0, 'root', False), (1, 'A', True), (2, 'B', True), (2, 'C', True),
    ]


def test_missing_left_root_is_all_new():
    right = element('root', children=[element('a', children=[element('b')])])
    graph, differences = Aligner().align(None, right)
    assert all(n.status is NodeStatus.NEW for n in graph.walk())
    assert [n.name for n in differences] == ['root', 'a', 'b']
    assert all(phantom for _, _, phantom in graph.projected_names(True))


def test_missing_right_root_is_all_deleted():
    left = element('root', children=[element('a')])
    graph, differences = Aligner().align(left, None)
    assert [n.status for n in differences] == [NodeStatus.DELETED, NodeStatus.DELETED]


def test_both_roots_missing():
    with pytest.raises(ValueError):
        Aligner().align(None, None)


def test_root_change_is_first_difference():
    left = element('root', {'version': '1'}, children=[element('a', text='x')])
    right = element('root', {'version': '2'}, children=[element('a', text='y')])
    graph, differences = Aligner().align(left, right)
    assert [n.name for n in differences] == ['root', 'a']
    assert graph.node(graph.root).status is NodeStatus.UPDATED


def test_differences_are_in_pre_order():
    left = element('r', children=[
        element('a', children=[element('x', text='1'), element('y', text='1')]),
        element('b', text='1'),
    ])
    right = element('r', children=[
        element('a', children=[element('x', text='2'), element('y', text='2')]),
        element('b', text='2'),
    ])
    _, differences = Aligner().align(left, right)
    assert [n.name for n in differences] == ['x', 'y', 'b']


@pytest.mark.parametrize('rules', [
    RuleSet(),
    _unordered_rules(),
    RuleSet(Rule(mode=ComparisonMode.SAME_NAME)),
    _identity_rules('book'),
])
def test_comparing_a_document_with_itself_finds_nothing(rules):
    parser = XMLParser()
    graph, differences = Aligner(rules).align(parser.parse(SAMPLE), parser.parse(SAMPLE))
    assert len(differences) == 0
    assert all(n.status is NodeStatus.UNCHANGED and n.moved_state is MoveState.NONE
               for n in graph.walk())


def test_swapping_sides_mirrors_the_result():
    def build(first, second):
        left = element('root', children=[element('b'), element('a', {'v': first}), element('x')])
        right = element('root', children=[element('a', {'v': second}), element('b'), element('y')])
        return left, right

    rules = _unordered_rules(ComparisonMode.SAME_NAME)
    left, right = build('1', '2')
    forward, _ = Aligner(rules).align(left, right)
    backward, _ = Aligner(rules).align(right, left)

    swapped = {NodeStatus.NEW: NodeStatus.DELETED, NodeStatus.DELETED: NodeStatus.NEW}
    expected = {
        name: (swapped.get(status, status), moved.mirrored())
        for name, (status, moved) in _children(forward).items()
    }
    assert _children(backward) == expected
    assert _children(forward)['a'] == (NodeStatus.UPDATED, MoveState.UP_AND_UPDATED)
    assert _children(forward)['x'][0] is NodeStatus.DELETED


def test_every_difference_flags_all_ancestors():
    parser = XMLParser()
    changed = SAMPLE.replace('9.99', '8.99').replace('Monthly', 'Weekly')
    graph, differences = Aligner().align(parser.parse(SAMPLE), parser.parse(changed))
    assert len(differences) == 2
    for node in differences:
        assert all(a.has_different_descendant for a in graph.ancestors(node.handle))
    for node in graph.walk():
        if node.name == 'title':
            assert not node.has_different_descendant


def test_deep_documents_do_not_recurse():
    def chain(leaf_text):
        root = element('n0')
        current = root
        for i in range(1, 3000):
            current = current.append(element(f"n{i}"))
        current.text = leaf_text
        return root

    graph, differences = Aligner().align(chain('a'), chain('b'))
    assert len(differences) == 1
    assert differences[0].name == 'n2999'
    assert graph.node(graph.root).has_different_descendant


def test_rules_with_rejected_rewrites_still_compare():
    from core.errors import RulesErrorListener
    from core.rules_parser import RulesParser

    listener = RulesErrorListener()
    rules = RulesParser(listener).parse(r'''<nodeRules>
  <rule nodeName="item"><CDATA><applyRegex replaceFrom="(a)" replaceTo="$2"/></CDATA></rule>
  <rule nodeName="other"><CDATA><applyRegex replaceFrom="\s*kg" replaceTo="\d"/></CDATA></rule>
</nodeRules>''')
    assert len(listener.errors) == 1

    left = element('root', children=[element('item', text='a1'), element('other', text='5 kg')])
    right = element('root', children=[element('item', text='a2'), element('other', text='5d')])
    graph, differences = Aligner(rules).align(left, right)
    assert _children(graph) == {
        'item': (NodeStatus.UPDATED, MoveState.NONE),
        'other': (NodeStatus.UNCHANGED, MoveState.NONE),
    }
    assert len(differences) == 1


def test_find_distinguishes_sides_at_the_same_path():
    from core.comparison_graph import NodeKey

    left = element('root', children=[element('A')])
    right = element('root', children=[element('B')])
    graph, _ = Aligner().align(left, right)
    deleted = graph.find(NodeKey((0,), 'A'))
    added = graph.find(NodeKey((0,), 'B'), is_left=False)
    assert deleted.status is NodeStatus.DELETED
    assert added.status is NodeStatus.NEW
    assert deleted is not added
    assert graph.find(NodeKey((), 'root'), is_left=False) is graph.node(graph.root)


def test_phantom_positions_follow_later_insertions():
    left = element('root', children=[element('a'), element('d1'), element('b'), element('d2')])
    right = element('root', children=[element('b'), element('a')])
    graph, _ = Aligner().align(left, right)
    assert [name for depth, name, _ in graph.projected_names(False) if depth == 1] == ['b', 'd2', 'a', 'd1']

    root = graph.node(graph.root)
    positions = {}
    for handle in root.children:
        node = graph.node(handle)
        if node.status is NodeStatus.DELETED:
            positions[node.name] = graph.display_position(node.right)
    assert positions == {'d1': 3, 'd2': 1}
