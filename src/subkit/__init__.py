"""
subkit: 字幕格式转换 + AI 文本优化服务

数据流：
    upload → parse → CaptionDocument → serialize/stream（下载）
                                     → batching/optimize（AI 优化）
"""
__version__ = "1.0.0"
