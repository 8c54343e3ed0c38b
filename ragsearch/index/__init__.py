"""Document extraction, parsing, chunking and index building."""