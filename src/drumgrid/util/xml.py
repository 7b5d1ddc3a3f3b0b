from __future__ import annotations
from typing import Optional
from xml.etree import ElementTree as ET

def get_ns(root):
    return {"m": root.tag.split('}')[0].strip('{')} if '}' in root.tag else {}

def F(elem, tag, ns):
    return elem.find(f"m:{tag}", ns) if ns else elem.find(tag)

def FA(elem, tag, ns):
    return elem.findall(f"m:{tag}", ns) if ns else elem.findall(tag)

def FD(elem, tag, ns):
    """First descendant with this tag (any depth)."""
    return elem.find(f".//m:{tag}", ns) if ns else elem.find(f".//{tag}")

def FDA(elem, tag, ns):
    return elem.findall(f".//m:{tag}", ns) if ns else elem.findall(f".//{tag}")

def local(tag: str) -> str:
    return tag.split('}')[-1] if '}' in tag else tag

def int_text(elem, default: int) -> int:
    if elem is None or elem.text is None:
        return default
    try:
        return int(elem.text.strip())
    except ValueError:
        try:
            v = float(elem.text.strip())
        except ValueError:
            return default
        return int(v) if v.is_integer() else default

def sub(parent: ET.Element, tag: str, text: Optional[object] = None, **attrib: str) -> ET.Element:
    el = ET.SubElement(parent, tag, attrib)
    if text is not None:
        el.text = str(text)
    return el

def FP(elem, path: str, ns):
    """find() along a slash-separated path of local names."""
    if ns:
        path = "/".join(f"m:{p}" for p in path.split("/"))
    return elem.find(path, ns)
