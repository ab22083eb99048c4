"""
PortalDesk - 多标签页管理控制台

基于Textual的终端工作区：标签页生命周期管理、视图缓存与状态持久化
"""

__version__ = "0.1.0"
