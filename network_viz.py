"""
Decision Tree Visualization Module

Draws the explanation graph produced by the impact simulator:
1. Layered layout, root on the left, outcomes on the right
2. Condition nodes and outcome nodes in different colours
3. Edge labels describing each derivation step
"""

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from typing import Dict, Optional, Tuple

from models import DecisionTree


# =============================================================================
# LAYOUT CONFIGURATION
# =============================================================================

NODE_COLORS = {
    'root': '#34495e',       # Dark blue-grey
    'condition': '#3498db',  # Blue
    'outcome': '#2ecc71',    # Green
}

LAYER_SPACING = 2.0
ROW_SPACING = 1.0
NODE_RADIUS = 0.18


def layout_tree(tree: DecisionTree) -> Dict[str, Tuple[float, float]]:
    """
    Position nodes by breadth-first depth from root.

    Returns:
        node_id -> (x, y); nodes of the same depth are stacked vertically
        and centred on y = 0
    """
    depth = {DecisionTree.ROOT_ID: 0}
    queue = [DecisionTree.ROOT_ID]
    while queue:
        node_id = queue.pop(0)
        for child in tree.children(node_id):
            if child not in depth:
                depth[child] = depth[node_id] + 1
                queue.append(child)

    layers: Dict[int, list] = {}
    for node_id in tree.nodes:
        if node_id in depth:
            layers.setdefault(depth[node_id], []).append(node_id)

    positions = {}
    for d, node_ids in layers.items():
        offset = (len(node_ids) - 1) * ROW_SPACING / 2
        for i, node_id in enumerate(node_ids):
            positions[node_id] = (d * LAYER_SPACING, offset - i * ROW_SPACING)
    return positions


# =============================================================================
# DRAWING FUNCTIONS
# =============================================================================

def draw_decision_tree(ax, tree: DecisionTree, title: Optional[str] = None):
    """
    Draw a decision tree on the given axes.

    Args:
        ax: Matplotlib axes
        tree: Explanation graph to draw
        title: Plot title
    """
    positions = layout_tree(tree)

    # Draw edges first (so nodes are on top)
    for edge in tree.edges:
        if edge.from_id not in positions or edge.to_id not in positions:
            continue
        from_pos = positions[edge.from_id]
        to_pos = positions[edge.to_id]

        ax.annotate(
            '',
            xy=to_pos,
            xytext=from_pos,
            arrowprops=dict(
                arrowstyle='->',
                color='#2c3e50',
                linewidth=1.5,
                shrinkA=12,
                shrinkB=12,
                connectionstyle='arc3,rad=0.05'
            )
        )
        mid = ((from_pos[0] + to_pos[0]) / 2, (from_pos[1] + to_pos[1]) / 2)
        ax.text(mid[0], mid[1] + 0.08, edge.label, ha='center', va='bottom',
                fontsize=7, color='#7f8c8d', style='italic')

    # Draw nodes
    for node_id, pos in positions.items():
        node = tree.get_node(node_id)
        kind = 'root' if node_id == DecisionTree.ROOT_ID else node.kind
        color = NODE_COLORS.get(kind, NODE_COLORS['condition'])

        circle = plt.Circle(pos, NODE_RADIUS, color=color, ec='black', linewidth=1, zorder=10)
        ax.add_patch(circle)

        label = node.label
        if node.confidence is not None:
            label += f"\n(confidence {node.confidence:.2f})"
        ax.text(
            pos[0], pos[1] - NODE_RADIUS - 0.08,
            label,
            ha='center', va='top',
            fontsize=8,
            zorder=11
        )

    # Configure axes
    if positions:
        xs = [p[0] for p in positions.values()]
        ys = [p[1] for p in positions.values()]
        ax.set_xlim(min(xs) - 1.0, max(xs) + 1.5)
        ax.set_ylim(min(ys) - 1.0, max(ys) + 0.6)
    ax.set_aspect('equal')
    ax.axis('off')

    if title:
        ax.set_title(title, fontsize=12, fontweight='bold')


def plot_decision_tree(tree: DecisionTree, output_path: str = "decision_tree.png", title: str = None):
    """
    Save a decision tree diagram with a legend.
    """
    fig, ax = plt.subplots(figsize=(12, 6))

    draw_decision_tree(ax, tree, title=title or "Impact Derivation")

    legend_elements = [
        mpatches.Patch(color=NODE_COLORS['root'], label='Disruption'),
        mpatches.Patch(color=NODE_COLORS['condition'], label='Condition'),
        mpatches.Patch(color=NODE_COLORS['outcome'], label='Outcome'),
    ]
    ax.legend(handles=legend_elements, loc='upper left', framealpha=0.9)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight', facecolor='white')
    plt.close()
    print(f"Saved: {output_path}")
