"""Test module to run the examples and module demos

The tests are run using pytest.
"""

from basicspline import common, curve, polysolve, spline
from examples.spline import spline_svg_preview


def test_examples_spline_svg_preview(tmp_path):
    """Test function for spline_svg_preview example"""
    filename = tmp_path / "spline_preview.svg"
    spline_svg_preview.main(str(filename))
    assert filename.exists()
    assert "<svg" in filename.read_text(encoding="utf-8")


def test_module_mains(capsys):
    """The module demos run and print something"""
    common.main()
    polysolve.main()
    curve.main()
    spline.main()
    assert capsys.readouterr().out
