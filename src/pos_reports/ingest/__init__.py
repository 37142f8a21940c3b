"""CSV ingestion and classification pipeline.

Modules, leaf-first:
    cleaning_utils: cell trimming, blank rows, volume parsing, CSV reading
    segmenter: location/staff block segmentation of a raw export table
    classifier: per-row exclusions, rule lookup and staff category
    emitter: fact batches and batched persistence
    api: parse_report_csvs() orchestration and the command line entry point
"""
