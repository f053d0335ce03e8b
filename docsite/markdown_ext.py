from __future__ import annotations

import re
import xml.etree.ElementTree as etree

from markdown.extensions import Extension
from markdown.extensions.attr_list import AttrListExtension, AttrListTreeprocessor
from markdown.treeprocessors import Treeprocessor

ALLOWED_ATTRIBUTES = ("id", "class", r"^data(-\w+)+$")


class ImplicitFigureProcessor(Treeprocessor):
    """Turn a paragraph holding nothing but an image into a <figure>."""

    def __init__(self, md, figcaption: bool):
        super().__init__(md)
        self.figcaption = figcaption

    def run(self, root):
        for paragraph in root.iter("p"):
            if len(paragraph) != 1 or (paragraph.text or "").strip():
                continue
            image = paragraph[0]
            if image.tag != "img" or (image.tail or "").strip():
                continue
            paragraph.tag = "figure"
            paragraph.text = None
            image.tail = None
            alt = image.get("alt", "")
            if self.figcaption and alt:
                caption = etree.SubElement(paragraph, "figcaption")
                caption.text = alt


class ImplicitFigureExtension(Extension):
    def __init__(self, **kwargs):
        self.config = {"figcaption": [True, "Add a <figcaption> taken from the image alt text."]}
        super().__init__(**kwargs)

    def extendMarkdown(self, md):
        # after inline patterns (20) have produced the <img> elements
        md.treeprocessors.register(
            ImplicitFigureProcessor(md, self.getConfig("figcaption")),
            "implicit_figures",
            5
        )


def attribute_matcher(allowed):
    patterns = [re.compile(item if item.startswith("^") else f"^{re.escape(item)}$") for item in allowed]

    def is_allowed(name: str) -> bool:
        return any(pattern.match(name) for pattern in patterns)

    return is_allowed


class AllowedAttrListTreeprocessor(AttrListTreeprocessor):
    """attr_list that only lets through the allowed attribute names.

    Attributes the document already carried (link hrefs, image sources) are
    restored when a {: ...} block tries to override them.
    """

    def __init__(self, md, allowed):
        super().__init__(md)
        self.is_allowed = attribute_matcher(allowed)

    def assign_attrs(self, elem, *args, **kwargs):
        before = dict(elem.attrib)
        result = super().assign_attrs(elem, *args, **kwargs)
        for name in list(elem.attrib):
            if self.is_allowed(name) or before.get(name) == elem.attrib[name]:
                continue
            if name in before:
                elem.set(name, before[name])
            else:
                del elem.attrib[name]
        return result


class AllowedAttrListExtension(AttrListExtension):
    def __init__(self, **kwargs):
        self.config = {"allowed": [list(ALLOWED_ATTRIBUTES), "Attribute names or ^regexes that {: } may set."]}
        super().__init__(**kwargs)

    def extendMarkdown(self, md):
        # same name and priority as attr_list, so it takes its place
        md.treeprocessors.register(AllowedAttrListTreeprocessor(md, self.getConfig("allowed")), "attr_list", 8)
        md.registerExtension(self)
