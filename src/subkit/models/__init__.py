"""
外部模型客户端
"""
