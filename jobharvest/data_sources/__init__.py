"""Job board data sources"""
