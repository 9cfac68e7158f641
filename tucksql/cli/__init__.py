"""tucksql 命令行工具"""
