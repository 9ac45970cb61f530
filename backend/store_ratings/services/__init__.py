"""
Rating core: access gate, rating store, aggregate engine and the
rating service that ties them into one unit of work
"""
