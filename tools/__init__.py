"""MCP tool registrations for the asset cleanup server"""
