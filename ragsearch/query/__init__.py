"""Query parsing, local scoring, rank fusion and the query engine."""