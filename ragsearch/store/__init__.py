"""The store interface and its Elasticsearch backend."""