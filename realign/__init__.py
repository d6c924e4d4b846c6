"""Speaker realignment: batched, overlap-stitched relabeling of long transcripts."""
