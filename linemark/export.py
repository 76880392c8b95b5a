"""Whole-document HTML export."""

import html
from typing import Iterable

EXPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', sans-serif;
      line-height: 1.6;
      max-width: 800px;
      margin: 0 auto;
      padding: 2rem;
      color: #333333;
    }}
    .editor-line {{ min-height: 1.7em; margin-bottom: 0.2em; padding: 2px 0; }}
    .editor-line p, .editor-line ul, .editor-line ol, .editor-line blockquote {{ margin: 0; }}
    .code-block-start, .code-block-end, .math-block-start, .math-block-end {{ display: none; }}
    .code-block-line {{
      display: block;
      background-color: #f6f8fa;
      font-family: 'SFMono-Regular', Consolas, 'Liberation Mono', Menlo, monospace;
      font-size: 0.9em;
      white-space: pre;
    }}
    .math-block-line {{ display: block; padding: 0.5em 0; }}
    blockquote {{ border-left: 4px solid #dfe2e5; color: #6a737d; padding-left: 1em; }}
    table {{ border-collapse: collapse; width: 100%; }}
    table th, table td {{ border: 1px solid #dfe2e5; padding: 6px 13px; }}
    img {{ max-width: 100%; height: auto; }}
    .render-fallback {{ white-space: pre-wrap; }}
  </style>
</head>
<body>
{body}
</body>
</html>
"""


def export_document(lines_html: Iterable[str], title: str) -> str:
    """Wrap each line's preview HTML in an ``editor-line`` block of a full page.

    ``title`` is escaped; the line HTML is inserted as is.
    """
    body = "\n".join(f'<div class="editor-line">{line}</div>' for line in lines_html)
    return EXPORT_TEMPLATE.format(title=html.escape(title), body=body)
