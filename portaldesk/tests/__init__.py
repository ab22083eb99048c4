"""
PortalDesk 测试包
"""
