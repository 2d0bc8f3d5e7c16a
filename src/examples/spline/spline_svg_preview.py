"""Draw the top view (x/z plane) of a spline as SVG."""

from __future__ import annotations

import svgwrite
import svgwrite.container
from svgwrite.extensions import Inkscape

from basicspline.spline import Spline

CANVAS_SIZE_MM = 150.0
MARGIN_MM = 10.0
STEPS_PER_SEGMENT = 40


def build_drawing(spline: Spline) -> svgwrite.Drawing:
    """Create the drawing: the curve on the main layer, handles on the debug layer."""
    points = list(spline.iterate_points(STEPS_PER_SEGMENT))
    handles = list(spline.iterate_control_points())
    xs = [p[0] for p in points] + [h for cp in handles for h in (cp.in_tangent[0], cp.out_tangent[0])]
    zs = [p[2] for p in points] + [h for cp in handles for h in (cp.in_tangent[2], cp.out_tangent[2])]
    xmin, zmin = min(xs), min(zs)
    extent = max(max(xs) - xmin, max(zs) - zmin, 1e-9)
    scale = (CANVAS_SIZE_MM - 2 * MARGIN_MM) / extent

    def to_canvas(vec):
        # z axis points up on the page
        return (
            MARGIN_MM + (vec[0] - xmin) * scale,
            CANVAS_SIZE_MM - MARGIN_MM - (vec[2] - zmin) * scale,
        )

    drawing = svgwrite.Drawing(
        size=(f"{CANVAS_SIZE_MM}mm", f"{CANVAS_SIZE_MM}mm"),
        viewBox=f"0 0 {CANVAS_SIZE_MM} {CANVAS_SIZE_MM}",
        profile="full",
    )
    inkscape = Inkscape(drawing)
    main_layer: svgwrite.container.Group = inkscape.layer(label="main", locked=False)
    debug_layer: svgwrite.container.Group = inkscape.layer(label="debug", locked=False)

    main_layer.add(
        drawing.polyline([to_canvas(p) for p in points], fill="none", stroke="black", stroke_width=0.4)
    )
    for cp in handles:
        debug_layer.add(
            drawing.polyline(
                [to_canvas(cp.in_tangent), to_canvas(cp.point), to_canvas(cp.out_tangent)],
                fill="none",
                stroke="red",
                stroke_width=0.2,
            )
        )
        debug_layer.add(drawing.circle(center=to_canvas(cp.point), r=0.8, fill="blue"))

    drawing.add(main_layer)
    drawing.add(debug_layer)
    return drawing


def main(filename: str = "spline_preview.svg"):
    """Main"""
    spline = Spline.from_points(
        [(0.0, 0.0, 0.0), (2.0, 0.0, 3.0), (5.0, 1.0, 2.0), (6.0, 0.0, -1.0), (3.0, 0.0, -2.0)], loop=True
    )
    spline.split(spline.length * 0.3)

    drawing = build_drawing(spline)
    drawing.saveas(filename, pretty=True)
    print(f"Saved spline preview ({spline.control_points_count} control points) to: {filename}")


if __name__ == "__main__":
    main()
