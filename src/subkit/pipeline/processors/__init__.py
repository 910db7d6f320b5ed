"""
Processors：无 IO 的核心业务逻辑

- sanitize: 文本清洗
- parse: bytes → CaptionDocument
- serialize: CaptionModel → bytes
- batching: 按 token 预算切批
- optimize: 顺序驱动外部优化、合并结果
- stream: 分块流式输出
- rate_limit: 准入控制
"""
