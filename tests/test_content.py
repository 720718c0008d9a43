from pathlib import Path

from siteinsight.adapters.capture import screenshot_path
from siteinsight.adapters.content import extract_page

HTML = """
<html>
  <head>
    <title> Example   Domain </title>
    <meta name="description" content="An example  site">
    <script>var tracking = true;</script>
  </head>
  <body>
    <h1>Welcome</h1>
    <p>This domain is for use in examples.</p>
    <ul><li>Fast</li><li><p>Simple</p></li></ul>
    <h3>Contact</h3>
    <style>.x { color: red }</style>
  </body>
</html>
"""


def test_extract_page_reads_metadata():
    fetched = extract_page(HTML)
    assert fetched.metadata.title == "Example Domain"
    assert fetched.metadata.description == "An example site"


def test_extract_page_renders_markdown_blocks():
    fetched = extract_page(HTML)
    assert fetched.content.split("\n\n") == [
        "# Welcome",
        "This domain is for use in examples.",
        "- Fast",
        "Simple",
        "### Contact",
    ]
    assert "tracking" not in fetched.content


def test_extract_page_falls_back_to_open_graph_and_body_text():
    html = """<html><head>
    <meta property="og:title" content="OG Title">
    <meta property="og:description" content="OG description">
    </head><body><div>Just   a div</div></body></html>"""
    fetched = extract_page(html, "Just   a div")
    assert fetched.metadata.title == "OG Title"
    assert fetched.metadata.description == "OG description"
    assert fetched.content == "Just a div"


def test_extract_page_without_metadata():
    fetched = extract_page("<p>hi</p>")
    assert fetched.metadata.title is None
    assert fetched.metadata.description is None


def test_screenshot_path_is_named_after_host():
    path = screenshot_path(Path("shots"), "https://www.example.com/a?b=c")
    assert path.parent == Path("shots")
    assert path.name.startswith("www-example-com-")
    assert path.suffix == ".png"
