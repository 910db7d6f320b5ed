"""
ContentSanitizer：纯文本清洗（parse 与 optimize 两条路径共用）

两遍扫描，不用正则（避免无约束标签匹配的回溯风险）：
1. 去标签：'<' 后至少跟一个非 '>' 字符即视为标签开始，删到下一个 '>'（含），
   没有 '>' 则删到字符串末尾（未闭合标签）
2. 逐字符删掉剩余的 '<' / '>'
最后去掉首尾空白。

这是内容被其他地方当作 HTML 渲染前唯一的注入防线，进入文档的每条
content / text 都必须经过这里。
"""


def _strip_tags(text: str) -> str:
    out = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "<" and i + 1 < n and text[i + 1] != ">":
            close = text.find(">", i + 1)
            if close < 0:
                break
            i = close + 1
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _strip_brackets(text: str) -> str:
    return "".join(ch for ch in text if ch != "<" and ch != ">")


def sanitize(text: str | None) -> str:
    """
    清洗字幕文本。纯函数、全域、永不失败、幂等。

    >>> sanitize("<i>Hello</i> <b>world")
    'Hello world'
    """
    if not text:
        return ""
    return _strip_brackets(_strip_tags(str(text))).strip()
